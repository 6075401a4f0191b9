"""
Metadata Codec
==============

Bidirectional mapping between a document filename and its metadata.

Canonical names look like ``2020-04-03_BankA_Statement_20.pdf``:
date, institution, title and page joined by ``_``. Decoding is best-effort
and never raises; every field comes back independently optional so the
caller decides which defaults, if any, to substitute.

A field that itself contains ``_`` does not survive a decode of its own
encoding, since the delimiter is not escaped. This is a known lossy case.
"""

import re
from dataclasses import dataclass, asdict
import datetime
from pathlib import PurePath
from typing import Optional, Union

from filecabinet.utils.exceptions import FormatError, ErrorCode

DELIMITER = "_"
FIELD_COUNT = 4

# Tried in order; the first pattern giving a valid calendar date wins.
DATE_PATTERNS = (
    re.compile(r"^(?P<year>[0-9]{4})-(?P<month>[0-9]{2})-(?P<day>[0-9]{2})"),
    re.compile(r"^(?P<year>[0-9]{4})(?P<month>[0-9]{2})(?P<day>[0-9]{2})"),
    re.compile(r"^(?P<year>[0-9]{4})"),
)
PAGE_PATTERN = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class DocumentMetadata:
    """Fully specified metadata for one document.

    Attributes:
        date: Document date.
        institution: Issuing institution.
        title: Document title.
        page: Page number, starting at 1.
        extension: File extension without the dot.
    """
    date: datetime.date
    institution: str
    title: str
    page: int
    extension: str

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


@dataclass(frozen=True)
class PartialMetadata:
    """Decoder output: every field may be absent."""
    date: Optional[datetime.date] = None
    institution: Optional[str] = None
    title: Optional[str] = None
    page: Optional[int] = None
    extension: Optional[str] = None

    @property
    def missing(self) -> list:
        """Names of the fields that could not be decoded."""
        return [name for name, value in asdict(self).items() if value is None]

    def complete(self, **defaults) -> DocumentMetadata:
        """Fill absent fields from explicit defaults.

        Args:
            **defaults: Values for any of date, institution, title, page, extension.

        Returns:
            DocumentMetadata with every field set.

        Raises:
            FormatError: If a field is absent and no default was given for it.
        """
        unknown = set(defaults) - set(asdict(self))
        if unknown:
            raise TypeError(f"Unknown metadata fields: {sorted(unknown)}")

        values = {
            name: value if value is not None else defaults.get(name)
            for name, value in asdict(self).items()
        }
        absent = [name for name, value in values.items() if value is None]
        if absent:
            raise FormatError(
                f"Missing metadata fields: {', '.join(absent)}",
                error_code=ErrorCode.INVALID_METADATA,
                details={"missing": absent}
            )
        return DocumentMetadata(**values)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat() if self.date else None
        return data


def parse_date(text: str) -> Optional[datetime.date]:
    """Parse the leading date of a field.

    Accepts ``YYYY-MM-DD``, ``YYYYMMDD`` and a bare ``YYYY`` (which maps
    to January 1st). Matches that are not real calendar dates fall through
    to the next, less specific pattern.
    """
    for pattern in DATE_PATTERNS:
        match = pattern.match(text)
        if not match:
            continue
        parts = match.groupdict()
        try:
            return datetime.date(
                int(parts["year"]),
                int(parts.get("month") or 1),
                int(parts.get("day") or 1),
            )
        except ValueError:
            continue
    return None


def parse_page(text: str) -> Optional[int]:
    """Return the first run of digits in ``text`` as a page number."""
    match = PAGE_PATTERN.search(text)
    if not match:
        return None
    page = int(match.group(0))
    return page if page > 0 else None


def _split_name(filename: Union[str, PurePath]):
    name = PurePath(filename).name
    path = PurePath(name)
    extension = path.suffix[1:].lower() if path.suffix else None
    stem = path.stem if path.suffix else name
    return stem, extension or None


def decode(filename: Union[str, PurePath]) -> PartialMetadata:
    """Decode document metadata from a filename.

    Args:
        filename: Bare filename or path; only the final component is used.

    Returns:
        PartialMetadata with whatever fields could be recovered.
    """
    stem, extension = _split_name(filename)
    # Fields past the fourth are ignored.
    fields = stem.split(DELIMITER)[:FIELD_COUNT]
    fields += [None] * (FIELD_COUNT - len(fields))

    raw_date, institution, title, raw_page = fields
    return PartialMetadata(
        date=parse_date(raw_date) if raw_date else None,
        institution=institution or None,
        title=title or None,
        page=parse_page(raw_page) if raw_page is not None else None,
        extension=extension,
    )


def encode(metadata: DocumentMetadata, extension: Optional[str] = None) -> str:
    """Encode metadata as a canonical filename.

    Args:
        metadata: Complete document metadata.
        extension: Extension to use instead of ``metadata.extension``.

    Returns:
        ``{YYYY-MM-DD}_{institution}_{title}_{page}.{ext}``
    """
    ext = (extension if extension is not None else metadata.extension).lstrip(".").lower()
    if not ext:
        raise FormatError(
            "Canonical filenames need an extension",
            error_code=ErrorCode.INVALID_METADATA
        )
    return (
        f"{metadata.date.isoformat()}{DELIMITER}{metadata.institution}"
        f"{DELIMITER}{metadata.title}{DELIMITER}{metadata.page}.{ext}"
    )


def canonical_name(filename: Union[str, PurePath], **defaults) -> str:
    """Decode a filename and re-encode it in canonical form.

    Raises:
        FormatError: If a required field is absent and has no default.
    """
    metadata = decode(filename).complete(**defaults)
    return encode(metadata)


def is_canonical(filename: Union[str, PurePath]) -> bool:
    """Check whether a filename is already in canonical form."""
    name = PurePath(filename).name
    try:
        return canonical_name(name) == name
    except FormatError:
        return False
