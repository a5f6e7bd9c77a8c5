"""Persistence of the cached install credentials between installer runs."""

import os
import tempfile
from typing import Optional

from keptninstaller.constants import FILE_MODE
from keptninstaller.errors import InstallerError, PreconditionError
from keptninstaller.models import CredentialRecord


class CredentialStore:
    """Reads and writes the credential record as a single-line JSON blob."""

    def __init__(self, credentials_file: str, logger):
        self.credentials_file = credentials_file
        self.logger = logger

    def load(self) -> Optional[CredentialRecord]:
        """Returns the cached record, or None when nothing usable is cached."""
        if not os.path.exists(self.credentials_file):
            return None

        try:
            with open(self.credentials_file, "r", encoding="utf-8") as file_obj:
                blob = file_obj.read().strip()
            return CredentialRecord.from_json(blob) if blob else None
        except (OSError, ValueError) as exc:
            self.logger.debug("Ignoring unreadable credential cache '%s': %s", self.credentials_file, exc)
            return None

    def save(self, record: CredentialRecord):
        directory = os.path.dirname(self.credentials_file) or "."
        os.makedirs(directory, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(prefix=".install-creds-", dir=directory)
        try:
            os.chmod(temp_path, FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                file_obj.write(record.to_json())
            os.replace(temp_path, self.credentials_file)
        except OSError as exc:
            raise InstallerError(
                f"Could not write credential file '{self.credentials_file}': {exc}"
            ) from exc
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
        self.logger.debug("Cached install credentials at %s", self.credentials_file)

    def read_file(self, path: str) -> CredentialRecord:
        """Parses a user-supplied credential file without touching the cache."""
        try:
            with open(path, "r", encoding="utf-8") as file_obj:
                return CredentialRecord.from_json(file_obj.read())
        except OSError as exc:
            raise PreconditionError(f"Could not read credential file '{path}': {exc}") from exc
        except ValueError as exc:
            raise PreconditionError(f"Credential file '{path}' is not a valid JSON object: {exc}") from exc
