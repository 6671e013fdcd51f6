"""Domain models for the inventory."""

from datetime import date, datetime, timedelta
from pathlib import Path

from pydantic import BaseModel, Field

# Envelope sentinels of an empty inventory
EMPTY_START = date.max
EMPTY_STOP = date.min


def product_folder(product: str, version: float) -> str:
    """Return the remote/local folder name of a product version, e.g. ``05kmCPro.v4.51``."""
    return f"{product}.v{version:.2f}"


def date_folders(day: date) -> tuple[str, str]:
    """Return the year and date folder names of `day`, e.g. ``("2020", "2020_06_12")``."""
    return day.strftime("%Y"), day.strftime("%Y_%m_%d")


class FileStats(BaseModel):
    """Remote stats of a single data file."""

    size: int = Field(ge=0)  # 0 marks a file removed from the server (tombstone)
    mtime: date  # Remote modification date
    converted: int | None = None  # Size of the converted file, if known

    @property
    def is_tombstone(self) -> bool:
        return self.size == 0


class FileSection(BaseModel):
    count: int = 0
    converted: int = 0
    ext: str | None = None  # Remote file extension, assumed uniform


class ServerSection(BaseModel):
    product: str
    root: str
    productpath: str


class LocalSection(BaseModel):
    root: Path
    path: Path


class DatabaseSection(BaseModel):
    dates: int = 0
    missing: int = 0
    start: date = EMPTY_START
    stop: date = EMPTY_STOP
    created: datetime = Field(default_factory=datetime.now)
    updated: datetime = Field(default_factory=datetime.now)

    @property
    def is_empty(self) -> bool:
        return self.start == EMPTY_START and self.stop == EMPTY_STOP


class CatalogMetadata(BaseModel):
    file: FileSection = Field(default_factory=FileSection)
    server: ServerSection
    local: LocalSection
    database: DatabaseSection = Field(default_factory=DatabaseSection)


class Catalog(BaseModel):
    """Inventory of remote file stats for one product."""

    metadata: CatalogMetadata
    dates: dict[date, dict[str, FileStats]] = Field(default_factory=dict)
    gaps: list[date] = Field(default_factory=list)  # Dates in [start, stop] without remote data
    # Converted sizes stashed during a resync, keyed by file name
    temp: dict[str, int] | None = Field(default=None, exclude=True)

    def touch(self) -> None:
        """Advance the `updated` timestamp so the catalog is saved."""
        database = self.metadata.database
        now = datetime.now()
        if now > database.updated:
            database.updated = now
        else:
            database.updated = database.updated + timedelta(microseconds=1)

    def sorted_dates(self) -> list[date]:
        return sorted(self.dates)


class RemoteStat(BaseModel):
    """Entry of a remote stat scan."""

    name: str  # File name including extension
    size: int
    mtime: datetime

    @property
    def stem(self) -> str:
        return Path(self.name).stem

    @property
    def suffix(self) -> str:
        return Path(self.name).suffix


class FileLocation(BaseModel):
    target: Path  # Final file after conversion (equals download without converter)
    download: Path  # File as fetched from the server
    remote: str  # Absolute remote path


class FileDirectory(BaseModel):
    dst: Path
    src: str


class DataFile(BaseModel):
    """Download unit derived from the catalog, never persisted."""

    name: str
    ext: str
    date: date
    location: FileLocation
    directory: FileDirectory

    @classmethod
    def build(cls, catalog: Catalog, day: date, name: str, target_ext: str = "") -> "DataFile":
        """Derive local and remote locations of file `name` on `day`."""
        year, folder = date_folders(day)
        ext = catalog.metadata.file.ext or ""
        dst = Path(catalog.metadata.local.path) / year / folder
        src = f"{catalog.metadata.server.productpath.rstrip('/')}/{year}/{folder}"
        download = dst / f"{name}{ext}"
        target = dst / f"{name}{target_ext}" if target_ext else download
        return cls(
            name=name,
            ext=ext,
            date=day,
            location=FileLocation(target=target, download=download, remote=f"{src}/{name}{ext}"),
            directory=FileDirectory(dst=dst, src=src),
        )

    @property
    def is_converted(self) -> bool:
        """Whether the target is a converted artifact distinct from the download."""
        return self.location.target != self.location.download

    def __str__(self) -> str:
        return f"File({self.name}{self.ext})"


class Counter(BaseModel):
    """Per-run outcome counts."""

    downloads: int = 0
    conversions: int = 0
    skipped: int = 0
    failed: int = 0

    def __repr__(self) -> str:
        return (
            f"Counter("
            f"downloads={self.downloads}, "
            f"conversions={self.conversions}, "
            f"skipped={self.skipped}, "
            f"failed={self.failed})"
        )
