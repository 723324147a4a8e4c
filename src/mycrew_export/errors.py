"""Exceptions raised by the export and QR paths.

Every error carries a short ``user_message`` suitable for showing as-is; the
exception text holds the technical detail for the log.
"""
from __future__ import annotations


class ExportError(Exception):
    user_message = "Export failed."

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.user_message)
        self.detail = detail


class UnsupportedDataShape(ExportError):
    user_message = "This data cannot be exported in the requested format."


class QRPayloadTooLarge(ExportError):
    user_message = "This contact holds too much data for a single QR code."


class QRDecodeFailed(ExportError):
    user_message = "This QR code does not contain a readable contact."


class FiltersRequired(ExportError):
    user_message = "Apply a filter or a search before exporting several contacts as QR codes."


class ExportIOFailed(ExportError):
    user_message = "The export could not be saved or shared."


class RecordNotFound(ExportError):
    user_message = "The record to export no longer exists."


class NoMatchingContacts(ExportError):
    user_message = "No contact matches the active filters."


class ExportBusy(ExportError):
    user_message = "An export is already in progress."
