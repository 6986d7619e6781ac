"""File-backed store for notes and their linked conversations.

Notes are UTF-8 text files under a root directory, optionally grouped into
folders one level deep. ``conversations.json`` in the root maps a note name to
the chat conversation that discusses it; ``link_conversation`` is meant to be
passed as a session's ``on_new_conversation_created`` callback.
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"
NOTE_SUFFIX = ".txt"
CONVERSATION_INDEX_FILE = "conversations.json"
VALID_NAME_PATTERN = re.compile(r"^[\w][\w .\-]*$")
INVALID_NAME_ERROR = "Invalid name '{name}': use letters, digits, spaces, '.', '-' or '_'"


class NoteInfo(BaseModel):
    """Metadata of a stored note."""

    name: str
    folder: Optional[str] = None
    size: int
    modified_at: datetime


class NoteStore:
    """Saves, loads, lists and deletes notes below ``root``."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).expanduser()
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _validate_name(name: str) -> str:
        name = name.strip()
        if not name or ".." in name or not VALID_NAME_PATTERN.match(name):
            raise ValueError(INVALID_NAME_ERROR.format(name=name))
        return name

    def _folder_path(self, folder: Optional[str]) -> Path:
        if folder is None:
            return self.root
        return self.root / self._validate_name(folder)

    def _note_path(self, name: str, folder: Optional[str] = None) -> Path:
        name = self._validate_name(name)
        if not name.endswith(NOTE_SUFFIX):
            name = f"{name}{NOTE_SUFFIX}"
        return self._folder_path(folder) / name

    # folders

    def create_folder(self, name: str) -> Path:
        path = self._folder_path(name)
        path.mkdir(exist_ok=True)
        logger.info(f"Created folder {path}")
        return path

    def list_folders(self) -> List[str]:
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())

    # notes

    def save(self, name: str, content: str, folder: Optional[str] = None) -> Path:
        """Write ``content`` to a note, creating its folder if needed."""
        path = self._note_path(name, folder)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding=DEFAULT_ENCODING)
        logger.debug(f"Saved note {path} ({len(content)} chars)")
        return path

    def load(self, name: str, folder: Optional[str] = None) -> str:
        """Read a note.

        Raises:
            FileNotFoundError: If the note does not exist
        """
        return self._note_path(name, folder).read_text(encoding=DEFAULT_ENCODING)

    def list(self, folder: Optional[str] = None) -> List[NoteInfo]:
        """List notes in ``folder`` (the root when None), newest first."""
        directory = self._folder_path(folder)
        if not directory.is_dir():
            return []

        notes = []
        for path in directory.glob(f"*{NOTE_SUFFIX}"):
            stat = path.stat()
            notes.append(
                NoteInfo(
                    name=path.stem,
                    folder=folder,
                    size=stat.st_size,
                    modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                )
            )
        return sorted(notes, key=lambda note: note.modified_at, reverse=True)

    def delete(self, name: str, folder: Optional[str] = None) -> bool:
        """Delete a note and its conversation link.

        Returns:
            True if a note was removed
        """
        path = self._note_path(name, folder)
        if not path.exists():
            return False
        path.unlink()

        index = self._read_index()
        if index.pop(path.stem, None) is not None:
            self._write_index(index)
        logger.info(f"Deleted note {path}")
        return True

    # conversation links

    def link_conversation(self, note_name: str, conversation_id: str) -> None:
        """Remember that ``note_name`` is discussed in ``conversation_id``."""
        note_name = self._validate_name(note_name)
        index = self._read_index()
        index[note_name] = conversation_id
        self._write_index(index)
        logger.info(f"Linked note '{note_name}' to conversation {conversation_id}")

    def conversation_for(self, note_name: str) -> Optional[str]:
        return self._read_index().get(self._validate_name(note_name))

    def _read_index(self) -> Dict[str, str]:
        path = self.root / CONVERSATION_INDEX_FILE
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding=DEFAULT_ENCODING))
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable conversation index {path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_index(self, index: Dict[str, str]) -> None:
        path = self.root / CONVERSATION_INDEX_FILE
        path.write_text(json.dumps(index, indent=2, sort_keys=True), encoding=DEFAULT_ENCODING)
