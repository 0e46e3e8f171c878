import logging
import os
from pathlib import Path

from legacylens.core.models.document import SourceDocument

logger = logging.getLogger(__name__)


class SourceLoader:
    """Walk a codebase and load source files as documents."""

    COBOL_EXTENSIONS = {".cob", ".cbl", ".cpy", ".cobcopy"}
    EXTENSIONS = COBOL_EXTENSIONS | {".c", ".h", ".y", ".l", ".def", ".conf", ".words"}
    SKIP_DIRS = {".git", "node_modules", "build_aux", "build_windows", "po", "m4", ".worktrees"}

    def __init__(self, max_file_bytes: int = 1_000_000, cobol_only: bool = False):
        self._max_file_bytes = max_file_bytes
        self._extensions = self.COBOL_EXTENSIONS if cobol_only else self.EXTENSIONS

    def supports(self, file_path: Path) -> bool:
        return file_path.suffix.lower() in self._extensions

    def load(self, file_path: Path, root: Path) -> SourceDocument:
        content = file_path.read_text(encoding="utf-8")
        return SourceDocument(path=file_path.relative_to(root).as_posix(), content=content)

    def discover(self, root: Path) -> list[SourceDocument]:
        """Load every supported file under root, in sorted path order."""
        documents: list[SourceDocument] = []

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in self.SKIP_DIRS)
            for filename in sorted(filenames):
                file_path = Path(dirpath) / filename
                if not self.supports(file_path):
                    continue
                try:
                    if file_path.stat().st_size > self._max_file_bytes:
                        logger.debug(f"Skip large file: {file_path}")
                        continue
                    documents.append(self.load(file_path, root))
                except (OSError, UnicodeDecodeError) as e:
                    logger.error(f"Failed to load {file_path}: {e}")

        by_ext: dict[str, int] = {}
        for doc in documents:
            by_ext[doc.extension] = by_ext.get(doc.extension, 0) + 1
        summary = ", ".join(f"{ext}: {count}" for ext, count in sorted(by_ext.items()))
        logger.info(
            f"Discovered {len(documents)} files ({summary}), "
            f"{sum(d.line_count for d in documents)} lines"
        )
        return documents
