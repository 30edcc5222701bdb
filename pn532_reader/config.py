"""
Configuration for the PN532 tag reader
"""

import os


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == 'true'


class Config:
    """Base configuration"""

    # Transport: 'spi' (raw frames over spidev), 'uart' (raw frames over HSU)
    # or 'adafruit' (adafruit_pn532 driver on the board's SPI pins)
    TRANSPORT = os.environ.get('PN532_TRANSPORT', 'spi')

    # SPI Configuration
    SPI_BUS = int(os.environ.get('PN532_SPI_BUS', 0))
    SPI_CHIP_SELECT = int(os.environ.get('PN532_SPI_CS', 0))
    SPI_CLOCK_HZ = int(os.environ.get('PN532_SPI_CLOCK_HZ', 1_000_000))
    SPI_MODE = 0
    ADAFRUIT_CS_PIN = os.environ.get('PN532_CS_PIN', 'CE0')

    # Serial (HSU) Configuration
    SERIAL_PORT = os.environ.get('PN532_SERIAL_PORT', '/dev/ttyS0')
    SERIAL_BAUDRATE = int(os.environ.get('PN532_SERIAL_BAUDRATE', 115200))

    # Polling Configuration
    SCAN_TIMEOUT_MS = int(os.environ.get('PN532_SCAN_TIMEOUT_MS', 200))
    POLL_INTERVAL = float(os.environ.get('PN532_POLL_INTERVAL', 0.05))  # seconds
    DEBOUNCE_SECONDS = float(os.environ.get('PN532_DEBOUNCE_SECONDS', 2.0))

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE = os.environ.get('PN532_LOG_FILE')

    # Web Monitor Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'pn532_reader_secret_key'
    DEBUG = _env_bool('DEBUG', 'False')
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', 3000))
    MAX_TAGS_DISPLAY = 100  # Number of recent tags kept for the monitor


class DevelopmentConfig(Config):
    """Development environment"""
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    """Production environment"""
    DEBUG = False
    LOG_LEVEL = 'WARNING'

    HOST = os.environ.get('HOST', '127.0.0.1')
    PORT = int(os.environ.get('PORT', 5000))


class TestingConfig(Config):
    """Testing environment"""
    TESTING = True
    DEBUG = True
    LOG_LEVEL = 'DEBUG'
    POLL_INTERVAL = 0.001
    MAX_TAGS_DISPLAY = 5


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': Config
}


def get_config(name=None):
    """Get configuration by name, falling back to the PN532_ENV environment variable"""
    config_name = name or os.environ.get('PN532_ENV', 'default')
    return config.get(config_name, config['default'])
