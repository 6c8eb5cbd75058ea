# ragstore_chat/core/staging.py
"""
Local file staging.

Ordered set of local files waiting to become a new document store, with
the accepted-type and size checks applied at the point files are added.
"""

# imports built-in modules
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

# imports third-party modules
import httpx

# imports local modules
from ragstore_chat.config import config
from ragstore_chat.core.models import StagedFile
from ragstore_chat.exceptions import FileTooLargeError, UnsupportedFileTypeError
from ragstore_chat.utils.logger import get_session_logger

logger = get_session_logger()


@dataclass(frozen=True)
class SampleDocument:
    name: str
    details: str
    url: str
    file_name: str


SAMPLE_DOCUMENTS = [
    SampleDocument(
        name="Hyundai i10 Manual",
        details="562 pages, PDF",
        url=(
            "https://www.hyundai.com/content/dam/hyundai/in/en/data/"
            "connect-to-service/owners-manual/2025/i20&i20nlineFromOct2023-Present.pdf"
        ),
        file_name="hyundai-i10-manual.pdf",
    ),
    SampleDocument(
        name="LG Washer Manual",
        details="36 pages, PDF",
        url="https://www.lg.com/us/support/products/documents/WM2077CW.pdf",
        file_name="lg-washer-manual.pdf",
    ),
]


def guess_mime_type(file_name: str) -> Optional[str]:
    if file_name.lower().endswith(".md"):
        return "text/markdown"
    mime_type, _ = mimetypes.guess_type(file_name)
    return mime_type


class StagingSet:
    """Pending local files, kept in the order they were added."""

    def __init__(
        self,
        allowed_extensions: Optional[Sequence[str]] = None,
        max_size_mb: Optional[int] = None,
    ):
        self.allowed_extensions = [
            ext.lower() for ext in (allowed_extensions or config.ALLOWED_EXTENSIONS)
        ]
        self.max_size_mb = max_size_mb or config.MAX_FILE_SIZE_MB
        self._files: List[StagedFile] = []

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[StagedFile]:
        return iter(self._files)

    def __bool__(self) -> bool:
        return bool(self._files)

    @property
    def files(self) -> List[StagedFile]:
        return list(self._files)

    def accepts(self, file_name: str) -> bool:
        return Path(file_name).suffix.lower() in self.allowed_extensions

    def validate(self, file: StagedFile) -> None:
        """Raise if ``file`` has a rejected extension or is too large."""
        if not self.accepts(file.name):
            raise UnsupportedFileTypeError(file.name)
        if file.size > self.max_size_mb * 1024 * 1024:
            raise FileTooLargeError(file.name, self.max_size_mb)

    def add(self, file: StagedFile) -> None:
        self.validate(file)
        self._files.append(file)

    def add_path(self, path: str, name: Optional[str] = None) -> StagedFile:
        """Stage a file from disk, reading its size and guessing its type."""
        file_path = Path(path)
        file_name = name or file_path.name
        staged = StagedFile(
            name=file_name,
            path=str(file_path),
            size=file_path.stat().st_size,
            mime_type=guess_mime_type(file_name),
        )
        self.add(staged)
        return staged

    def remove(self, index: int) -> StagedFile:
        return self._files.pop(index)

    def clear(self) -> None:
        self._files = []


async def fetch_sample(
    sample: SampleDocument,
    dest_dir: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Download a sample document and return its local path.

    Raises
    ------
    httpx.HTTPError
        If the download fails or the server answers with an error status.
    """
    target_dir = Path(dest_dir or config.SAMPLES_DIR)
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / sample.file_name

    owns_client = client is None
    http = client or httpx.AsyncClient(follow_redirects=True, timeout=60)
    try:
        response = await http.get(sample.url)
        response.raise_for_status()
        target.write_bytes(response.content)
    finally:
        if owns_client:
            await http.aclose()

    logger.info(f"Fetched sample {sample.name} -> {target}")
    return str(target)
