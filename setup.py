"""
Setup script for the PN532 Tag Reader
"""

from setuptools import setup
import os

# Read the README file
def read_readme():
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "PN532 NFC tag reader with debounced UID reporting"

setup(
    name="pn532-reader",
    version="1.0.0",
    description="Poll a PN532 transceiver and report newly detected NFC tag UIDs",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    packages=["pn532_reader"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Topic :: Communications",
        "Topic :: System :: Hardware",
    ],
    python_requires=">=3.8",
    install_requires=[
        "pyserial>=3.5",
        "Flask>=2.0",
        "Flask-SocketIO>=5.3",
    ],
    extras_require={
        "spi": [
            "spidev>=3.5",
        ],
        "adafruit": [
            "adafruit-circuitpython-pn532>=2.3",
            "Adafruit-Blinka>=8.0",
        ],
        "dev": [
            "pytest>=6.0",
            "pytest-cov>=2.0",
            "black>=21.0",
            "flake8>=3.8",
        ],
    },
    entry_points={
        "console_scripts": [
            "pn532-reader=pn532_reader.run:main",
        ],
    },
    keywords="nfc pn532 rfid spi uart reader",
)
