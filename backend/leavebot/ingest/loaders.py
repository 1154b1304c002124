"""Document loaders for supported policy formats."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import fitz
import langid
import yaml
from markdown_it import MarkdownIt

from leavebot.core.errors import IngestionError
from leavebot.ingest.types import LoadedDocument

_MD = MarkdownIt()


class BaseLoader:
    """Common loader interface."""

    suffixes: tuple[str, ...] = ()

    def can_load(self, path: Path) -> bool:
        return path.suffix.lower() in self.suffixes

    def load(self, path: Path) -> LoadedDocument:  # pragma: no cover - interface
        raise NotImplementedError


class MarkdownLoader(BaseLoader):
    """Keeps the raw markdown; section headings double as chunk boundaries."""

    suffixes = (".md", ".markdown")

    def load(self, path: Path) -> LoadedDocument:
        raw = path.read_bytes()
        text = raw.decode("utf-8", errors="ignore")
        front_matter, body = _split_front_matter(text)
        metadata: dict[str, object] = {"path": str(path)}
        if front_matter:
            metadata["front_matter"] = front_matter
        title = (front_matter or {}).get("title") or _first_heading(body) or path.stem
        return LoadedDocument(
            path=path,
            text=body,
            metadata=metadata,
            file_type=path.suffix.lower(),
            title=str(title),
            language=_detect_lang(body),
            size_bytes=len(raw),
        )


class TextLoader(BaseLoader):
    suffixes = (".txt", ".text")

    def load(self, path: Path) -> LoadedDocument:
        raw = path.read_bytes()
        text = raw.decode("utf-8", errors="ignore")
        return LoadedDocument(
            path=path,
            text=text,
            metadata={"path": str(path)},
            file_type=path.suffix.lower(),
            title=path.stem,
            language=_detect_lang(text),
            size_bytes=len(raw),
        )


class PDFLoader(BaseLoader):
    suffixes = (".pdf",)

    def load(self, path: Path) -> LoadedDocument:
        raw = path.read_bytes()
        try:
            with fitz.open(stream=raw, filetype="pdf") as doc:
                pages = [page.get_text("text", sort=True) for page in doc]
        except (fitz.FileDataError, RuntimeError) as exc:
            raise IngestionError(f"Could not parse PDF {path.name}: {exc}") from exc
        text = "\n\n".join(pages)
        return LoadedDocument(
            path=path,
            text=text,
            metadata={"path": str(path), "page_count": len(pages)},
            file_type=".pdf",
            title=path.stem,
            language=_detect_lang(text),
            size_bytes=len(raw),
        )


class LoaderRegistry:
    """Registry that selects an appropriate loader for a path."""

    def __init__(self) -> None:
        self._loaders: list[BaseLoader] = [
            MarkdownLoader(),
            TextLoader(),
            PDFLoader(),
        ]

    def for_path(self, path: Path) -> BaseLoader | None:
        for loader in self._loaders:
            if loader.can_load(path):
                return loader
        return None

    def supports(self, path: Path) -> bool:
        return self.for_path(path) is not None

    def load(self, path: Path) -> LoadedDocument:
        loader = self.for_path(path)
        if loader is None:
            raise IngestionError(f"No loader registered for suffix {path.suffix!r}")
        try:
            return loader.load(path)
        except OSError as exc:
            raise IngestionError(f"Could not read {path}: {exc}") from exc

    def iter_files(self, root: Path) -> Iterator[Path]:
        """Yield loadable files under ``root`` in name order, skipping hidden ones."""
        if root.is_file():
            yield root
            return
        for path in sorted(root.rglob("*")):
            if path.name.startswith(".") or not path.is_file():
                continue
            yield path


def _split_front_matter(text: str) -> tuple[dict[str, object] | None, str]:
    if text.startswith("---"):
        parts = text.split("---", 2)
        if len(parts) >= 3:
            try:
                front_matter = yaml.safe_load(parts[1]) or {}
            except yaml.YAMLError:
                return None, text
            if isinstance(front_matter, dict):
                return front_matter, parts[2].lstrip("\n")
    return None, text


def _first_heading(text: str) -> str | None:
    tokens = _MD.parse(text)
    for idx, token in enumerate(tokens):
        if token.type == "heading_open" and idx + 1 < len(tokens):
            content = tokens[idx + 1].content.strip()
            if content:
                return content
    return None


def _detect_lang(text: str) -> str:
    if not text.strip():
        return "en"
    lang, _ = langid.classify(text)
    return lang


__all__ = ["BaseLoader", "MarkdownLoader", "TextLoader", "PDFLoader", "LoaderRegistry"]
