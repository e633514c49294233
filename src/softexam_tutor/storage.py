"""XML file storage with debounced background saves."""
import logging
import os
import tempfile
import threading
import xml.etree.ElementTree as ET
from pathlib import Path

from softexam_tutor import persistence

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".softexam_tutor"
SAVE_DELAY_SECONDS = 1.0

QUESTIONS_FILE = "softexam_questions.xml"
CHAPTERS_FILE = "knowledge_chapters.xml"
WRONG_QUESTIONS_FILE = "softexam_wrong_questions.xml"
STATISTICS_FILE = "softexam_learning_statistics.xml"
PRACTICES_FILE = "softexam_practices.xml"
NOTES_FILE = "softexam_question_notes.xml"
IDENTITY_FILE = "user_identity.xml"
CORRUPT_SUFFIX = ".corrupt"


def write_document(path: Path, root) -> None:
    """Write ``root`` to ``path`` through a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = persistence.to_xml_bytes(root)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise


def read_document(path: Path):
    """Parse ``path``; None if it is missing or not well-formed XML."""
    if not path.exists():
        logger.debug("%s does not exist yet", path)
        return None
    try:
        return persistence.from_xml_bytes(path.read_bytes())
    except (ET.ParseError, OSError):
        logger.exception("Could not read %s, keeping current state", path)
        return None


def set_aside(path: Path) -> Path | None:
    """Rename an unusable ``path`` to ``<name>.corrupt`` so later saves cannot replace it."""
    target = path.with_name(path.name + CORRUPT_SUFFIX)
    try:
        os.replace(path, target)
    except OSError:
        logger.exception("Could not move unusable %s aside", path)
        return None
    logger.warning("Moved unusable %s to %s", path.name, target)
    return target


class TutorStore:
    """Loads every component from the data directory and saves them back.

    Components notify the store on each mutation; the store then waits
    ``save_delay`` seconds for further changes before writing the files of
    the components whose ``modification_count`` moved since their last save.
    """

    def __init__(self, workspace, data_dir=DEFAULT_DATA_DIR, save_delay: float = SAVE_DELAY_SECONDS):
        self.workspace = workspace
        self.data_dir = Path(data_dir)
        self.save_delay = save_delay
        self._timer = None
        self._lock = threading.Lock()
        self._identity_dirty = False

        # file name -> (component, encoder); questions come first so that
        # session history can resolve its question ids on load.
        self._documents = {
            QUESTIONS_FILE: (workspace.questions, lambda: persistence.encode_questions(workspace.questions.all())),
            CHAPTERS_FILE: (workspace.chapters, lambda: persistence.encode_chapters(workspace.chapters.all())),
            WRONG_QUESTIONS_FILE: (
                workspace.wrong_book, lambda: persistence.encode_wrong_questions(workspace.wrong_book.all()),
            ),
            STATISTICS_FILE: (
                workspace.statistics,
                lambda: persistence.encode_statistics(
                    {i: workspace.statistics.for_identity(i) for i in workspace.statistics.identities()},
                    {i: workspace.statistics.daily_records(i) for i in workspace.statistics.identities()},
                ),
            ),
            PRACTICES_FILE: (workspace.engine, lambda: persistence.encode_sessions(workspace.engine.history())),
            NOTES_FILE: (workspace.notes, lambda: persistence.encode_notes(workspace.notes.all())),
        }
        self._saved_counts = {name: component.modification_count for name, (component, _) in self._documents.items()}

    def path(self, file_name: str) -> Path:
        return self.data_dir / file_name

    def attach(self) -> None:
        """Start listening to the workspace components."""
        for component, _ in self._documents.values():
            component.add_listener(self._on_change)
        self.workspace.identity.add_listener(self._on_identity_change)

    def detach(self) -> None:
        for component, _ in self._documents.values():
            component.remove_listener(self._on_change)
        self.workspace.identity.remove_listener(self._on_identity_change)

    def load(self) -> None:
        """Load all files synchronously.

        Missing files are skipped. Unreadable ones are moved aside as
        ``<name>.corrupt`` and the component keeps its current state.
        """
        ws = self.workspace
        loaders = [
            (QUESTIONS_FILE, persistence.decode_questions, ws.questions.replace_all),
            (CHAPTERS_FILE, persistence.decode_chapters, ws.chapters.replace_all),
            (WRONG_QUESTIONS_FILE, persistence.decode_wrong_questions, ws.wrong_book.replace_all),
            (STATISTICS_FILE, persistence.decode_statistics, lambda decoded: ws.statistics.replace_all(*decoded)),
            (
                PRACTICES_FILE,
                lambda root: persistence.decode_sessions(root, ws.questions.get),
                ws.engine.load_history,
            ),
            (NOTES_FILE, persistence.decode_notes, ws.notes.replace_all),
            (IDENTITY_FILE, persistence.decode_identity, lambda restored: ws.identity.restore(*restored)),
        ]
        for file_name, decode, apply in loaders:
            path = self.path(file_name)
            root = read_document(path)
            if root is None:
                if path.exists():
                    set_aside(path)
                continue
            decoded = decode(root)
            if decoded is None:
                logger.warning("Ignoring unusable %s", file_name)
                set_aside(path)
                continue
            apply(decoded)

        with self._lock:
            for name, (component, _) in self._documents.items():
                self._saved_counts[name] = component.modification_count
            self._identity_dirty = False
        logger.info("Loaded workspace from %s", self.data_dir)

    def is_dirty(self) -> bool:
        with self._lock:
            return self._identity_dirty or any(
                component.modification_count != self._saved_counts[name]
                for name, (component, _) in self._documents.items()
            )

    def schedule_save(self) -> None:
        """(Re)start the debounce timer; the save runs on a timer thread."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.save_delay, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        """Write every dirty document now. Returns False if any write failed."""
        with self._lock:
            ok = True
            for name, (component, encode) in self._documents.items():
                count = component.modification_count
                if count == self._saved_counts[name]:
                    continue
                try:
                    write_document(self.path(name), encode())
                except Exception:
                    logger.exception("Failed to save %s, will retry on next save", name)
                    ok = False
                    continue
                self._saved_counts[name] = count
                logger.debug("Saved %s (modification %d)", name, count)

            if self._identity_dirty:
                try:
                    write_document(self.path(IDENTITY_FILE), persistence.encode_identity(self.workspace.identity))
                    self._identity_dirty = False
                except Exception:
                    logger.exception("Failed to save %s, will retry on next save", IDENTITY_FILE)
                    ok = False
            return ok

    def close(self) -> bool:
        """Cancel any pending timer and save synchronously."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        return self.flush()

    def _on_change(self, component) -> None:
        self.schedule_save()

    def _on_identity_change(self, identity) -> None:
        with self._lock:
            self._identity_dirty = True
        self.schedule_save()
