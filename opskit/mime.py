"""Built-in MIME (content type) database that does not depend on the OS."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

OCTET_STREAM = "application/octet-stream"
NO_FALLBACK = ""


class MediaType(str, Enum):
    """Top-level media types."""

    APPLICATION = "application"
    AUDIO = "audio"
    EXAMPLE = "example"
    FONT = "font"
    IMAGE = "image"
    MESSAGE = "message"
    MODEL = "model"
    MULTIPART = "multipart"
    TEXT = "text"
    VIDEO = "video"


@dataclass(frozen=True)
class Spec:
    """What is known about one content type."""

    extensions: tuple[str, ...]
    compressible: bool | None = None
    char_encoding: str = ""
    source: str = ""


def _spec(*extensions: str, compressible: bool | None = None, charset: str = "", source: str = "") -> Spec:
    return Spec(extensions=extensions, compressible=compressible, char_encoding=charset, source=source)


_MIME_TYPES: dict[str, Spec] = {
    "application/epub+zip": _spec("epub", compressible=False, source="iana"),
    "application/gzip": _spec("gz", compressible=False, source="iana"),
    "application/javascript": _spec("js", "mjs", compressible=True, charset="UTF-8", source="iana"),
    "application/json": _spec("json", "map", compressible=True, charset="UTF-8", source="iana"),
    "application/msword": _spec("doc", "dot", compressible=False, source="iana"),
    "application/octet-stream": _spec(
        "bin", "dms", "lrf", "mar", "so", "dist", "distz", "pkg", "bpk", "dump", "elc",
        "deploy", "exe", "dll", "deb", "dmg", "iso", "img", "msi", "msp", "msm", "buffer",
        compressible=False, source="iana",
    ),
    "application/pdf": _spec("pdf", compressible=False, source="iana"),
    "application/rtf": _spec("rtf", compressible=True, source="iana"),
    "application/vnd.ms-excel": _spec("xls", "xlm", "xla", "xlc", "xlt", "xlw", compressible=False, source="iana"),
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": _spec(
        "pptx", compressible=False, source="iana"
    ),
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": _spec(
        "xlsx", compressible=False, source="iana"
    ),
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": _spec(
        "docx", compressible=False, source="iana"
    ),
    "application/wasm": _spec("wasm", compressible=True, source="iana"),
    "application/x-7z-compressed": _spec("7z", compressible=False, source="apache"),
    "application/x-bzip2": _spec("bz2", "boz", compressible=False, source="apache"),
    "application/x-rar-compressed": _spec("rar", compressible=False, source="apache"),
    "application/x-sh": _spec("sh", compressible=True, source="apache"),
    "application/x-tar": _spec("tar", compressible=True, source="apache"),
    "application/xml": _spec("xml", "xsl", "xsd", "rng", compressible=True, source="iana"),
    "application/zip": _spec("zip", compressible=False, source="iana"),
    "audio/midi": _spec("mid", "midi", "kar", "rmi", source="apache"),
    "audio/mp4": _spec("m4a", "mp4a", compressible=False, source="iana"),
    "audio/mpeg": _spec("mpga", "mp2", "mp2a", "mp3", "m2a", "m3a", compressible=False, source="iana"),
    "audio/ogg": _spec("oga", "ogg", "spx", "opus", compressible=False, source="iana"),
    "audio/wav": _spec("wav", compressible=False),
    "audio/webm": _spec("weba", compressible=False, source="apache"),
    "audio/x-aac": _spec("aac", compressible=False, source="apache"),
    "audio/x-flac": _spec("flac", source="apache"),
    "font/otf": _spec("otf", compressible=True, source="iana"),
    "font/ttf": _spec("ttf", compressible=True, source="iana"),
    "font/woff": _spec("woff", source="iana"),
    "font/woff2": _spec("woff2", source="iana"),
    "image/avif": _spec("avif", compressible=False, source="iana"),
    "image/bmp": _spec("bmp", compressible=True, source="iana"),
    "image/gif": _spec("gif", compressible=False, source="iana"),
    "image/heic": _spec("heic", source="iana"),
    "image/jpeg": _spec("jpeg", "jpg", "jpe", compressible=False, source="iana"),
    "image/png": _spec("png", compressible=False, source="iana"),
    "image/svg+xml": _spec("svg", "svgz", compressible=True, source="iana"),
    "image/tiff": _spec("tif", "tiff", compressible=False, source="iana"),
    "image/webp": _spec("webp", source="apache"),
    "image/x-icon": _spec("ico", compressible=True, source="apache"),
    "message/rfc822": _spec("eml", "mime", compressible=True, source="iana"),
    "model/gltf+json": _spec("gltf", compressible=True, source="iana"),
    "model/gltf-binary": _spec("glb", compressible=True, source="iana"),
    "text/calendar": _spec("ics", "ifb", source="iana"),
    "text/css": _spec("css", compressible=True, charset="UTF-8", source="iana"),
    "text/csv": _spec("csv", compressible=True, source="iana"),
    "text/html": _spec("html", "htm", "shtml", compressible=True, source="iana"),
    "text/markdown": _spec("md", "markdown", compressible=True, source="iana"),
    "text/plain": _spec("txt", "text", "conf", "def", "list", "log", "in", "ini", compressible=True, source="iana"),
    "text/yaml": _spec("yaml", "yml", compressible=True),
    "video/mp4": _spec("mp4", "mp4v", "mpg4", compressible=False, source="iana"),
    "video/mpeg": _spec("mpeg", "mpg", "mpe", "m1v", "m2v", compressible=False, source="iana"),
    "video/ogg": _spec("ogv", compressible=False, source="iana"),
    "video/quicktime": _spec("qt", "mov", compressible=False, source="iana"),
    "video/webm": _spec("webm", compressible=False, source="apache"),
    "video/x-flv": _spec("flv", compressible=False, source="apache"),
    "video/x-matroska": _spec("mkv", "mk3d", "mks", compressible=False, source="apache"),
    "video/x-msvideo": _spec("avi", source="apache"),
}

_EXTENSION_LOOKUP: dict[str, str] = {
    ext: content_type for content_type, spec in _MIME_TYPES.items() for ext in spec.extensions
}

# the database lists "jpeg" first, but "jpg" is the more universally used extension
_EXTENSION_OVERRIDES = {"image/jpeg": "jpg"}


def type_by_extension(ext: str, fallback: str = NO_FALLBACK) -> str:
    """Content type for an extension such as ".json", "json" or "JSON"."""
    normalized = ext.removeprefix(".").lower()
    return _EXTENSION_LOOKUP.get(normalized, fallback)


def extension_by_type(content_type: str, fallback: str = NO_FALLBACK) -> str:
    """Preferred extension (without dot) for a content type."""
    if content_type in _EXTENSION_OVERRIDES:
        return _EXTENSION_OVERRIDES[content_type]

    spec = _MIME_TYPES.get(content_type)
    if spec is None or not spec.extensions:
        return fallback
    return spec.extensions[0]


def is_type(content_type: str, typ: MediaType | str) -> bool:
    """Whether ``content_type`` belongs to the top-level media type ``typ``."""
    return content_type.startswith(MediaType(typ).value + "/")