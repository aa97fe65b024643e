"""
Project archive codec.

A project archive is a zip file. Every artifact is stored under its
canonical route suffix, so a restored archive routes without translation:

    schematic.drawio
    symbols/<lib>/<cell>.drawio
    style.json          style registry (current, fixed, presets)
    description.json    source description, when known (optional)
    manifest.json       {path, bytes, sha256} of every other member

History is never stored; a restored project starts every entity with a
single-entry history.
"""

from __future__ import annotations

import hashlib
import io
import json
import logging
import zipfile
import zlib
from dataclasses import dataclass, field
from typing import Any

from .errors import (
    CkdrawError,
    CorruptArchiveError,
    MissingSchematicError,
    MissingStyleError,
    NotFoundError,
    ValidationError,
)
from .models import SymbolKey
from .router import SCHEMATIC_SUFFIX, canonical_suffix, parse_suffix
from .store.artifacts import ArtifactStore
from .style.registry import StyleRegistry
from .style.schema import LayerStyles, default_layer_styles

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
STYLE_MEMBER = "style.json"
DESCRIPTION_MEMBER = "description.json"
MANIFEST_MEMBER = "manifest.json"


def compute_payload_manifest(files: dict[str, bytes | str]) -> list[dict[str, Any]]:
    """
    Compute payload manifest for a set of files.

    Args:
        files: Dict mapping path to content

    Returns:
        List of {path, bytes, sha256} entries
    """
    manifest = []
    for path, content in sorted(files.items()):
        content_bytes = content.encode("utf-8") if isinstance(content, str) else content
        manifest.append({
            "path": path,
            "bytes": len(content_bytes),
            "sha256": hashlib.sha256(content_bytes).hexdigest(),
        })
    return manifest


@dataclass
class RestoredProject:
    """Everything recovered from an archive."""

    schematic: str | None
    symbols: dict[SymbolKey, str]
    style: LayerStyles
    fixed: LayerStyles | None = None
    current_name: str | None = None
    presets: dict[str, LayerStyles] = field(default_factory=dict)
    description: dict[str, Any] | None = None
    warnings: list[CkdrawError] = field(default_factory=list)
    schematic_error: MissingSchematicError | None = None

    @property
    def style_recovered(self) -> bool:
        return not any(isinstance(w, MissingStyleError) for w in self.warnings)


class ProjectCodec:
    """Packs the working set into a zip archive and reads it back."""

    def serialize(
        self,
        store: ArtifactStore,
        styles: StyleRegistry,
        description: dict[str, Any] | None = None,
    ) -> bytes:
        """
        Build archive bytes from the live store and style registry.

        Args:
            store: Artifact content to pack
            styles: Registry whose current style (at minimum) is packed
            description: Source schematic description, if known
        """
        files: dict[str, str] = {}
        for key in store.keys():
            files[canonical_suffix(key)] = store.get(key).content
        files[STYLE_MEMBER] = json.dumps({"format": FORMAT_VERSION, **styles.to_dict()}, indent=2)
        if description is not None:
            files[DESCRIPTION_MEMBER] = json.dumps(description, indent=2)

        manifest = {"format": FORMAT_VERSION, "files": compute_payload_manifest(files)}

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path in sorted(files):
                zf.writestr(path, files[path])
            zf.writestr(MANIFEST_MEMBER, json.dumps(manifest, indent=2))
        data = buffer.getvalue()
        logger.info("serialized project: %d members, %d bytes", len(files) + 1, len(data))
        return data

    def deserialize(self, data: bytes) -> RestoredProject:
        """
        Reconstruct content and style from archive bytes.

        A missing or unreadable style is recovered with the default style and
        reported in `warnings`. A missing schematic is reported through
        `schematic_error` while symbols are still returned.

        Raises:
            CorruptArchiveError: Archive cannot be opened or fails verification
        """
        members = _read_members(data)

        manifest_raw = members.pop(MANIFEST_MEMBER, None)
        if manifest_raw is not None:
            _verify_manifest(manifest_raw, members)

        warnings: list[CkdrawError] = []
        style_raw = members.pop(STYLE_MEMBER, None)
        description_raw = members.pop(DESCRIPTION_MEMBER, None)

        restored = RestoredProject(schematic=None, symbols={}, style=default_layer_styles(), warnings=warnings)
        if style_raw is None:
            warnings.append(MissingStyleError(f"{STYLE_MEMBER} not found; using default style"))
        else:
            try:
                _apply_style_member(restored, style_raw)
            except MissingStyleError as exc:
                warnings.append(exc)

        if description_raw is not None:
            try:
                description = json.loads(_text(DESCRIPTION_MEMBER, description_raw))
                if not isinstance(description, dict):
                    raise ValueError("not an object")
                restored.description = description
            except (ValueError, CorruptArchiveError) as exc:
                warnings.append(CorruptArchiveError(f"{DESCRIPTION_MEMBER} ignored: {exc}"))

        for path, raw in sorted(members.items()):
            try:
                key = parse_suffix(path)
            except NotFoundError:
                logger.debug("ignoring archive member %s", path)
                continue
            content = _text(path, raw)
            if isinstance(key, SymbolKey):
                restored.symbols[key] = content
            else:
                restored.schematic = content

        if restored.schematic is None:
            restored.schematic_error = MissingSchematicError(f"{SCHEMATIC_SUFFIX} not found in archive")

        for warning in warnings:
            logger.warning("archive restore: %s", warning)
        return restored


def _read_members(data: bytes) -> dict[str, bytes]:
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            bad = zf.testzip()
            if bad is not None:
                raise CorruptArchiveError(f"archive member {bad} is damaged")
            members = {
                _normalize(info.filename): zf.read(info)
                for info in zf.infolist()
                if not info.is_dir()
            }
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError, OSError, ValueError) as exc:
        raise CorruptArchiveError(f"archive cannot be opened: {exc}") from exc
    except NotImplementedError as exc:
        raise CorruptArchiveError(f"archive uses an unsupported feature: {exc}") from exc
    return _strip_wrapper_dir(members)


def _normalize(name: str) -> str:
    name = name.replace("\\", "/")
    while name.startswith("./"):
        name = name[2:]
    return name.lstrip("/")


def _is_known_member(name: str) -> bool:
    if name in (STYLE_MEMBER, MANIFEST_MEMBER, DESCRIPTION_MEMBER):
        return True
    try:
        parse_suffix(name)
    except NotFoundError:
        return False
    return True


def _strip_wrapper_dir(members: dict[str, bytes]) -> dict[str, bytes]:
    """Accept archives re-zipped from a folder: drop a single shared top directory."""
    if not members or any(_is_known_member(name) for name in members):
        return members
    tops = {name.split("/", 1)[0] for name in members}
    if len(tops) != 1 or any("/" not in name for name in members):
        return members
    top = tops.pop()
    stripped = {name[len(top) + 1:]: raw for name, raw in members.items()}
    if not any(_is_known_member(name) for name in stripped):
        return members
    logger.debug("stripping wrapper directory %s/", top)
    return stripped


def _text(path: str, raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CorruptArchiveError(f"{path} is not UTF-8 text") from exc


def _verify_manifest(raw: bytes, members: dict[str, bytes]) -> None:
    try:
        manifest = json.loads(_text(MANIFEST_MEMBER, raw))
        entries = manifest["files"]
        if not isinstance(entries, list):
            raise TypeError("files must be a list")
    except (ValueError, KeyError, TypeError) as exc:
        raise CorruptArchiveError(f"{MANIFEST_MEMBER} is malformed: {exc}") from exc

    for entry in entries:
        path = entry.get("path") if isinstance(entry, dict) else None
        if not isinstance(path, str):
            raise CorruptArchiveError(f"{MANIFEST_MEMBER} has an entry without a path")
        if path not in members:
            raise CorruptArchiveError(f"{path} is listed in the manifest but missing")
        digest = hashlib.sha256(members[path]).hexdigest()
        if digest != entry.get("sha256"):
            raise CorruptArchiveError(f"{path} does not match its manifest checksum")


def _apply_style_member(restored: RestoredProject, raw: bytes) -> None:
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise MissingStyleError(f"{STYLE_MEMBER} is unreadable ({exc}); using default style") from exc
    if not isinstance(data, dict):
        raise MissingStyleError(f"{STYLE_MEMBER} is not an object; using default style")

    try:
        if "current" not in data:
            # Bare style mapping: only the active style was saved
            restored.style = LayerStyles.from_dict(data)
            return
        restored.style = LayerStyles.from_dict(data["current"])
    except ValidationError as exc:
        raise MissingStyleError(f"{STYLE_MEMBER} is invalid ({exc}); using default style") from exc

    # The remaining registry parts are best effort on top of a usable current style
    name = data.get("current_name")
    restored.current_name = name if isinstance(name, str) and name else None
    if isinstance(data.get("fixed"), dict):
        try:
            restored.fixed = LayerStyles.from_dict(data["fixed"])
        except ValidationError as exc:
            logger.warning("fixed style ignored: %s", exc)
    presets = data.get("presets")
    if isinstance(presets, dict):
        for preset_name, preset in presets.items():
            try:
                restored.presets[str(preset_name)] = LayerStyles.from_dict(preset)
            except ValidationError as exc:
                logger.warning("preset %r ignored: %s", preset_name, exc)
