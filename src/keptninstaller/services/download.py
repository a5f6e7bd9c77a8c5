"""Download service for installer manifests, with progress reporting."""

import os
import time

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from keptninstaller.errors import InstallerError


class DownloadService:
    """Streams a remote file to local storage."""

    def __init__(
        self,
        logger,
        console,
        requests_module,
        timeout: float = 60.0,
        retry_count: int = 0,
        retry_backoff_seconds: float = 2.0,
    ):
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.timeout = timeout
        self.retry_count = retry_count
        self.retry_backoff_seconds = retry_backoff_seconds

    def download_file(self, url: str, dest_path: str, description: str = "Downloading..."):
        self.logger.info("Downloading %s to %s", url, dest_path)
        max_attempts = max(1, self.retry_count + 1)

        for attempt in range(1, max_attempts + 1):
            try:
                self._stream_to_file(url, dest_path, description)
                return
            except self.requests.RequestException as exc:
                if attempt < max_attempts:
                    self.logger.warning(
                        "Download of %s failed on attempt %s/%s, retrying in %.1fs: %s",
                        url,
                        attempt,
                        max_attempts,
                        self.retry_backoff_seconds,
                        exc,
                    )
                    time.sleep(self.retry_backoff_seconds)
                    continue
                raise InstallerError(f"Download failed for {description}: {exc}") from exc
            except OSError as exc:
                raise InstallerError(f"Could not write {dest_path}: {exc}") from exc

    def _stream_to_file(self, url: str, dest_path: str, description: str):
        with self.requests.get(url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            total_size = int(response.headers.get("Content-Length", 0))

            os.makedirs(os.path.dirname(dest_path) or ".", exist_ok=True)

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                TimeElapsedColumn(),
                console=self.console,
            ) as progress:
                task = progress.add_task(f"[cyan]{description}", total=total_size or None)
                with open(dest_path, "wb") as file_obj:
                    for chunk in response.iter_content(chunk_size=8192):
                        if not chunk:
                            continue
                        file_obj.write(chunk)
                        progress.update(task, advance=len(chunk))
