class RailwayOverlayError(Exception):
    """Base exception for railway_overlay"""
    pass

class StorageError(RailwayOverlayError):
    """Raised when the persistent store cannot be opened, read or written"""
    pass

class PayloadFormatError(RailwayOverlayError):
    """Raised when raw payload text is not a JSON object"""
    pass
