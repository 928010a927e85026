"""Register map of the LIDAR-Lite v3 (byte offsets on the I2C bus)."""

DEFAULT_ADDRESS = 0x62

ACQ_CMD = 0x00
STATUS = 0x01
SIG_CNT_VAL = 0x02
ACQ_CONFIG = 0x04
SIGNAL_STRENGTH = 0x0E
DISTANCE = 0x0F  # high byte, low byte at 0x10
REF_CNT_VAL = 0x12
UNIT_ID_HIGH = 0x16
UNIT_ID_LOW = 0x17
I2C_ID_HIGH = 0x18
I2C_ID_LOW = 0x19
I2C_SEC_ADR = 0x1A
THRESH_BYPASS = 0x1C
I2C_CONFIG = 0x1E
COMMAND = 0x40
CORR_DATA = 0x52  # magnitude, sign byte at 0x53
ACQ_SETTINGS = 0x5D

AUTO_INCREMENT = 0x80
STATUS_BUSY = 0x01

CMD_ACQUIRE_WITH_BIAS = 0x04
TEST_MODE_ENABLE = 0x07
TEST_MODE_DISABLE = 0x00
CORRELATION_BANK = 0xC0

I2C_CONFIG_ENABLE_SECONDARY = 0x00
I2C_CONFIG_DISABLE_DEFAULT = 1 << 3

CORRELATION_MAX_SAMPLES = 1024
CORRELATION_DEFAULT_SAMPLES = 256


def auto_increment(reg: int) -> int:
    return reg | AUTO_INCREMENT
