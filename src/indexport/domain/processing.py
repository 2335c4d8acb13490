"""Transformation of raw rows into search documents."""

from __future__ import annotations

import html
import math
import posixpath
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final
from urllib.parse import quote, unquote

from dateutil import parser as date_parser

from .media import mime_type
from .packed import (
    FILE_COLUMNS,
    IMAGE_COLUMNS,
    RIVER_SEARCH_COLUMNS,
    decode_tuples,
    split_values,
)
from .types import Directive, FieldEncoding

if TYPE_CHECKING:
    from collections.abc import Callable

    from indexport.config.site import SiteConfig

    from .descriptors import EntityDescriptor, ReferenceField
    from .ports import MarkupRenderer
    from .references import ReferenceCache
    from .types import Document, Record, Row

log = getLogger(__name__)

FALSE_STRINGS: Final[frozenset[str]] = frozenset({"", "0", "false", "no", "off"})
PREVIEW_ROTATIONS: Final[frozenset[str]] = frozenset({"0", "90", "-90"})

# Image style name for each size variant URL key.
IMAGE_STYLES: Final[dict[str, str]] = {
    "url-large": "attachment-large",
    "url-small": "attachment-small",
    "url-thumb": "m",
}

_HTML_DIRECTIVES = frozenset({Directive.HTML, Directive.HTML_STRICT, Directive.HTML_IFRAME})
_IFRAME_RE = re.compile(
    r"\[iframe(?::(?P<width>\d+)x(?P<height>\d+))?(?:\s+\"(?P<title>[^\"]*)\")?\]"
    r"\((?P<url>[^)\s]+)\)"
)
_MARKDOWN_LINK_RE = re.compile(r"\]\(/(?!/)")
_HREF_RE = re.compile(r"""href=(?P<quote>["'])/(?!/)""")
_NUMERIC_RE = re.compile(r"^-?\d+(?:\.\d+)?$")
_WORD_SPLIT_RE = re.compile(r"[\s,]+")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _finite_int(number: float) -> int | None:
    return int(number) if math.isfinite(number) else None


def _to_int(value: object) -> int | None:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _finite_int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return _finite_int(float(text))
        except ValueError:
            return None
    return None


def _to_float(value: object) -> float | None:
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    return None


def _to_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in FALSE_STRINGS
    return bool(value)


def _to_epoch_millis(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value * 1000
    if isinstance(value, float):
        return _finite_int(value * 1000)
    if isinstance(value, datetime):
        parsed = value if value.tzinfo else value.replace(tzinfo=UTC)
        return int(parsed.timestamp() * 1000)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if _NUMERIC_RE.match(text):
        return _finite_int(float(text) * 1000)
    try:
        parsed = date_parser.parse(text)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp() * 1000)


def _compact(record: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in record.items() if value not in (None, "", [], {})}


@dataclass(slots=True)
class Processor:
    """Turns query rows into documents for one run.

    The processor owns no state besides the reference cache it reads from; the
    orchestrator is responsible for loading every referenced record before a row
    reaches :meth:`process`.
    """

    site: SiteConfig
    references: ReferenceCache
    renderer: MarkupRenderer
    post_process_item: Callable[[Document], None] | None = None
    clock: Callable[[], datetime] = field(default=_utcnow)
    _legacy_host_re: re.Pattern[str] | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        hosts = [host for host in self.site.effective_legacy_hosts() if host != self.site.host]
        if hosts:
            alternatives = "|".join(re.escape(host) for host in hosts)
            self._legacy_host_re = re.compile(
                rf"https?://(?:{alternatives})(?=[/\"'\s)?#]|$)", re.IGNORECASE
            )

    @property
    def website(self) -> str:
        return self.site.website

    # Documents.

    def process(
        self,
        descriptor: EntityDescriptor,
        row: Row,
        url_alias: str | None = None,
    ) -> Document:
        document: Document = {
            key: value for key, value in row.items() if value is not None and value != ""
        }
        document["id"] = int(row["id"])
        document["url"] = f"{self.website}/{descriptor.category.path_prefix}/{document['id']}"
        if url_alias:
            document["url_alias"] = self.entity_relative_url(url_alias)

        self._decode_joined(descriptor, document)
        for reference in descriptor.references:
            if reference.alias in document:
                self.resolve_reference(document, reference)
        for alias, directives in descriptor.conversions.items():
            for directive in directives:
                if alias not in document:
                    break
                self.convert(document, alias, directive)

        document["timestamp"] = self.clock().isoformat()
        if descriptor.hook is not None:
            descriptor.hook(document, self)
        if self.post_process_item is not None:
            self.post_process_item(document)
        return document

    def _decode_joined(self, descriptor: EntityDescriptor, document: Document) -> None:
        for joined in descriptor.joins:
            if joined.alias not in document:
                continue
            raw = document[joined.alias]
            match joined.encoding:
                case FieldEncoding.IMAGE_REFERENCE:
                    decoded: object = self.process_image(raw)
                case FieldEncoding.FILE_REFERENCE:
                    decoded = self.process_file(raw)
                case FieldEncoding.RIVER_SEARCH:
                    decoded = self.process_river_search(raw)
                case FieldEncoding.MULTI_VALUE:
                    decoded = split_values(raw)
                case _:
                    continue
            if decoded:
                document[joined.alias] = decoded
            else:
                log.debug("Dropping undecodable %s value for %s", joined.encoding, joined.alias)
                del document[joined.alias]

    def resolve_reference(self, document: Document, reference: ReferenceField) -> None:
        raw = document[reference.alias]
        ids = raw if isinstance(raw, list) else split_values(raw)
        records: list[Record] = []
        for value in ids:
            item_id = _to_int(value)
            if item_id is None:
                continue
            record = self.references.get_item(reference.bundle, item_id, reference.subfields)
            if record is not None:
                records.append(record)
        if records:
            document[reference.alias] = records
        else:
            del document[reference.alias]

    # Conversions.

    def convert(  # noqa: C901, PLR0912
        self, document: Document, key: str, directive: Directive
    ) -> None:
        value = document[key]
        match directive:
            case Directive.BOOL:
                document[key] = _to_bool(value)
            case Directive.INT:
                self._set_or_drop(document, key, _to_int(value))
            case Directive.FLOAT:
                self._set_or_drop(document, key, _to_float(value))
            case Directive.TIME:
                self._set_or_drop(document, key, _to_epoch_millis(value))
            case Directive.LINKS:
                if isinstance(value, str):
                    document[key] = self.process_links(value)
            case Directive.HTML | Directive.HTML_STRICT | Directive.HTML_IFRAME:
                rendered = self.render_html(value, directive) if isinstance(value, str) else ""
                if rendered:
                    document[f"{key}-html"] = rendered
                else:
                    document.pop(f"{key}-html", None)
            case Directive.MULTI_INT:
                values = value if isinstance(value, list) else split_values(value)
                numbers = [number for number in map(_to_int, values) if number is not None]
                self._set_or_drop(document, key, list(dict.fromkeys(numbers)) or None)
            case Directive.SINGLE:
                first = value[0] if isinstance(value, list) and value else None
                self._set_or_drop(document, key, first)
            case Directive.MULTI_STRING:
                parts = (
                    [part for part in _WORD_SPLIT_RE.split(value) if part]
                    if isinstance(value, str)
                    else []
                )
                self._set_or_drop(document, key, parts or None)
            case Directive.PRIMARY:
                self.flag_primary(document, key)

    @staticmethod
    def _set_or_drop(document: Document, key: str, value: object) -> None:
        if value is None:
            log.debug("Dropping field %s with unconvertible value", key)
            document.pop(key, None)
        else:
            document[key] = value

    @staticmethod
    def flag_primary(document: Document, key: str) -> None:
        primary = document.get(f"primary_{key}")
        if isinstance(primary, list):
            primary = primary[0] if len(primary) == 1 else None
        if not isinstance(primary, dict) or primary.get("id") is None:
            return
        primary_id = str(primary["id"])

        target = document[key]
        items = [target] if isinstance(target, dict) else target if isinstance(target, list) else []
        for item in items:
            if isinstance(item, dict) and str(item.get("id")) == primary_id:
                item["primary"] = True

    def process_links(self, text: str) -> str:
        text = _MARKDOWN_LINK_RE.sub(f"]({self.website}/", text)
        text = _HREF_RE.sub(lambda match: f"href={match['quote']}{self.website}/", text)
        if self._legacy_host_re is not None:
            text = self._legacy_host_re.sub(self.website, text)
        return text

    @staticmethod
    def process_iframes(text: str) -> str:
        def replace(match: re.Match[str]) -> str:
            attributes = []
            if match["width"]:
                attributes.append(f'width="{match["width"]}" height="{match["height"]}"')
            attributes.append(f'title="{html.escape(match["title"] or "", quote=True)}"')
            attributes.append(f'src="{html.escape(match["url"], quote=True)}"')
            return f'<iframe {" ".join(attributes)} frameborder="0" allowfullscreen></iframe>'

        return _IFRAME_RE.sub(replace, text)

    def render_html(self, text: str, directive: Directive = Directive.HTML) -> str:
        if directive not in _HTML_DIRECTIVES:
            raise ValueError(f"Not an HTML directive: {directive}")
        if directive is Directive.HTML_IFRAME:
            text = self.process_iframes(text)
        rendered = self.renderer.render(text)
        return self.renderer.sanitize(rendered, strict=directive is Directive.HTML_STRICT).strip()

    # Composite fields.

    def process_image(self, packed: object) -> list[Record]:
        images: list[Record] = []
        for parts in decode_tuples(packed, IMAGE_COLUMNS):
            uri = parts["uri"]
            if not uri:
                continue
            filename = parts["filename"] or posixpath.basename(uri)
            image: Record = {
                "id": _to_int(parts["id"]),
                "width": _to_int(parts["width"]),
                "height": _to_int(parts["height"]),
                "url": self.file_url(uri),
                "filename": filename,
                "mimetype": mime_type(filename),
                "filesize": _to_int(parts["filesize"]),
                "copyright": parts["copyright"].lstrip("@"),
                "caption": parts["caption"],
            }
            for key, style in IMAGE_STYLES.items():
                image[key] = self.file_url(uri, style)
            images.append(_compact(image))
        return images

    def process_file(self, packed: object) -> list[Record]:
        files: list[Record] = []
        for parts in decode_tuples(packed, FILE_COLUMNS):
            uri = parts["uri"]
            if not uri:
                continue
            filename = parts["filename"] or posixpath.basename(uri)
            record: Record = {
                "id": _to_int(parts["revision_id"]),
                "uuid": parts["uuid"],
                "url": self.file_url(uri),
                "filename": filename,
                "filehash": parts["filehash"],
                "mimetype": mime_type(filename),
                "filesize": _to_int(parts["filesize"]),
                "pagecount": _to_int(parts["page_count"]),
                "description": parts["description"],
                "language": parts["language"],
            }
            if record["mimetype"] == "application/pdf":
                record["preview"] = self._pdf_preview(parts, uri, filename)
            files.append(_compact(record))
        return files

    def _pdf_preview(self, parts: dict[str, str], uri: str, filename: str) -> Record | None:
        page = _to_int(parts["preview_page"])
        rotation = parts["preview_rotation"] or "0"
        if not page or page < 1 or rotation not in PREVIEW_ROTATIONS:
            return None
        stem = posixpath.splitext(posixpath.basename(unquote(filename)))[0]
        identifier = parts["preview_uuid"] or parts["uuid"]
        path = f"{posixpath.dirname(uri)}-pdf-previews/{identifier}-{stem}.png"
        preview: Record = {"url": self.file_url(path), "version": f"{page}-{rotation}"}
        for key, style in IMAGE_STYLES.items():
            preview[key] = self.file_url(path, style)
        return preview

    def process_river_search(self, packed: object) -> list[Record]:
        rivers: list[Record] = []
        for parts in decode_tuples(packed, RIVER_SEARCH_COLUMNS):
            if not parts["url"]:
                continue
            rivers.append(
                _compact(
                    {
                        "url": parts["url"],
                        "title": parts["title"],
                        "override": _to_int(parts["override"]),
                    }
                )
            )
        return rivers

    # URLs.

    def file_url(self, path: str, style: str = "") -> str:
        if path.startswith(("http://", "https://")):
            return path
        base = f"{self.website}{self.site.files_path}"
        if style:
            base += f"styles/{style}/public/"
        return base + self.encode_path(path.removeprefix("public://"))

    def entity_relative_url(self, path: str) -> str:
        return f"{self.website}/{self.encode_path(path.lstrip('/'))}"

    @staticmethod
    def encode_path(path: str) -> str:
        return quote(path, safe="/")
