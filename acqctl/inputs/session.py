"""Loader for previously saved capture sessions (zip archives)."""
from __future__ import annotations

import configparser
import logging
import re
import zipfile
from pathlib import Path
from typing import Iterator, List

from ..errors import InvalidConfigValue, SessionLoadError
from ..keys import SAMPLERATE
from .base import DEFAULT_CHUNK_SIZE, InputFileDevice
from .formats import BinaryDecoder

logger = logging.getLogger(__name__)

SESSION_VERSION = "2"
SESSION_FORMAT_NAME = "session"
METADATA_MEMBER = "metadata"
VERSION_MEMBER = "version"
DEVICE_SECTION = "device 1"


def _member_order(name: str) -> int:
    match = re.search(r"-(\d+)$", name)
    return int(match.group(1)) if match else 0


def _session_chunks(path: Path, members: List[str], chunk_size: int) -> Iterator[bytes]:
    with zipfile.ZipFile(path) as archive:
        for member in members:
            with archive.open(member) as handle:
                while True:
                    chunk = handle.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk


def load_session(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> InputFileDevice:
    """Open *path* as a saved session, raising :class:`SessionLoadError` if it is not one."""

    if not zipfile.is_zipfile(path):
        raise SessionLoadError(f"'{path}' is not a session archive")
    try:
        with zipfile.ZipFile(path) as archive:
            names = set(archive.namelist())
            if VERSION_MEMBER not in names or METADATA_MEMBER not in names:
                raise SessionLoadError(f"'{path}' is missing session version or metadata")
            version = archive.read(VERSION_MEMBER).decode("ascii", errors="replace").strip()
            metadata_text = archive.read(METADATA_MEMBER).decode("utf-8", errors="replace")
    except zipfile.BadZipFile as exc:
        raise SessionLoadError(f"'{path}' is not a readable archive: {exc}") from exc
    if version != SESSION_VERSION:
        raise SessionLoadError(f"Unsupported session version '{version}'")

    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read_string(metadata_text)
    except configparser.Error as exc:
        raise SessionLoadError(f"Invalid session metadata: {exc}") from exc
    if not parser.has_section(DEVICE_SECTION):
        raise SessionLoadError(f"Session metadata has no [{DEVICE_SECTION}] section")
    section = parser[DEVICE_SECTION]

    try:
        total = int(section.get("total probes", "0"))
    except ValueError as exc:
        raise SessionLoadError("Session metadata has an invalid probe count") from exc
    if total <= 0:
        raise SessionLoadError("Session declares no probes")
    capturefile = section.get("capturefile", "logic-1")
    probe_names = [section.get(f"probe{index}", f"D{index - 1}") for index in range(1, total + 1)]
    options = {"numchannels": str(total), "names": ",".join(probe_names)}
    samplerate = section.get("samplerate")
    if samplerate:
        try:
            options["samplerate"] = str(SAMPLERATE.parse_value(samplerate))
        except InvalidConfigValue as exc:
            raise SessionLoadError(f"Session metadata has an invalid samplerate: {exc}") from exc

    members = sorted(
        (name for name in names if name == capturefile or name.startswith(f"{capturefile}-")),
        key=_member_order,
    )
    decoder = BinaryDecoder(options)
    logger.info("Loaded session %s with %d probe(s) and %d data file(s)", path, total, len(members))
    return InputFileDevice(str(path), decoder, _session_chunks(path, members, chunk_size), SESSION_FORMAT_NAME)


__all__ = ["SESSION_VERSION", "load_session"]
