"""Custom exceptions for Message Store."""


class MessageStoreError(Exception):
    """Base exception for all Message Store errors."""


class StoreError(MessageStoreError):
    """Exception raised when the underlying storage engine fails."""


class SchemaVersionError(StoreError):
    """Exception raised when the database carries an unsupported schema."""


class ConfigurationError(MessageStoreError):
    """Exception raised for configuration related errors."""
