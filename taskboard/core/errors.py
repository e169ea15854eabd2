"""
Domain exceptions raised by the record store and services.
main.py maps each of these to an HTTP status code.
"""

from typing import Optional


class TaskboardError(Exception):
    """Base class for application errors"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StoreWriteError(TaskboardError):
    """The remote store accepted a write but returned no row"""
    status_code = 500

    def __init__(self, operation: str, table: str, record_id: Optional[str] = None):
        target = f"{table}[{record_id}]" if record_id else table
        super().__init__(f"Unable to {operation} item in {target}")
        self.operation = operation
        self.table = table
        self.record_id = record_id


class FileUploadError(TaskboardError):
    status_code = 502

    def __init__(self, path: str, reason: str):
        super().__init__(f"Unable to upload {path}: {reason}")
        self.path = path


class NotFoundError(TaskboardError):
    status_code = 404


class InviteConflictError(TaskboardError):
    """The invite was already accepted by a different user"""
    status_code = 409


class InviteUnavailableError(TaskboardError):
    """The invite is revoked, expired, or restricted to another email"""
    status_code = 410
