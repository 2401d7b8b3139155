"""
Error types for EPG Service

Pipeline errors abort a single refresh run, query errors are turned into
``{"error": ...}`` payloads by the query service.
"""


class EPGServiceError(Exception):
    """Base class for all service errors"""
    pass


# Transport

class FetchError(EPGServiceError):
    """Raised when the remote guide cannot be downloaded"""
    pass


# Format

class DecompressError(EPGServiceError):
    """Raised when the downloaded archive is not valid gzip data"""
    pass


class DocumentParseError(EPGServiceError):
    """Raised when the guide document is not well-formed XMLTV"""
    pass


# Record-level

class MalformedTimestamp(EPGServiceError, ValueError):
    """Raised when a programme timestamp is not in YYYYMMDDHHMMSS form"""
    pass


# Persistence

class PersistError(EPGServiceError):
    """Raised when the snapshot cannot be written"""
    pass


class NoSnapshot(EPGServiceError):
    """Raised when no snapshot has been saved yet"""
    pass


class SnapshotCorrupt(EPGServiceError):
    """Raised when the snapshot exists but cannot be read back"""
    pass


# Query

class QueryError(EPGServiceError):
    """Base class for errors reported to API clients"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingParameter(QueryError):
    def __init__(self):
        super().__init__("Missing parameters: both ch and date are required")


class InvalidDateFormat(QueryError):
    def __init__(self, date: str):
        super().__init__(f"Invalid date format: {date}. Expected YYYY-MM-DD")
        self.date = date


class ChannelNotFound(QueryError):
    def __init__(self, channel_name: str):
        super().__init__(f"Channel not found: {channel_name}")
        self.channel_name = channel_name


class NoProgramData(QueryError):
    def __init__(self, channel_name: str):
        super().__init__(f"No programme data for channel {channel_name}")
        self.channel_name = channel_name


class NoProgramDataForDate(QueryError):
    def __init__(self, channel_name: str, date: str):
        super().__init__(f"No programme data for channel {channel_name} on {date}")
        self.channel_name = channel_name
        self.date = date
