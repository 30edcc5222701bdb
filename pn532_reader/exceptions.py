"""
Custom exceptions for the PN532 tag reader
"""

class Pn532Error(Exception):
    """Base exception for PN532 reader operations"""
    pass

class TransportFault(Pn532Error):
    """Raised when the bus transport fails during a transfer"""
    pass

class BusPermissionError(TransportFault):
    """Raised when the operating system denies access to the bus device"""
    pass

class CommunicationError(Pn532Error):
    """Raised when the transceiver does not answer the firmware handshake"""
    pass

class MalformedFrame(Pn532Error):
    """Raised when a response frame fails structural validation"""
    pass

class ReaderNotConnectedError(Pn532Error):
    """Raised when trying to talk to the transceiver over a closed bus"""
    pass
