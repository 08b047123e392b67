"""
Structured rich-text documents for blog post content.

A Document is an ordered list of typed blocks edited through explicit
commands. It renders to escaped HTML for the ``content`` column and
produces a plain-text excerpt.
"""
from dataclasses import dataclass, field, replace as _replace
from html import escape
from typing import List, Optional, Sequence, Union
import re

DEFAULT_EXCERPT_LENGTH = 160


@dataclass(frozen=True)
class Link:
    text: str
    href: str


Inline = Union[str, Link]


@dataclass(frozen=True)
class Paragraph:
    parts: Sequence[Inline] = ()

    def to_html(self) -> str:
        rendered = []
        for part in self.parts:
            if isinstance(part, Link):
                rendered.append(
                    f'<a href="{escape(part.href)}" target="_blank" rel="noopener noreferrer">'
                    f"{escape(part.text)}</a>"
                )
            else:
                rendered.append(escape(part))
        return f"<p>{''.join(rendered)}</p>"

    def text(self) -> str:
        return "".join(p.text if isinstance(p, Link) else p for p in self.parts)


@dataclass(frozen=True)
class Heading:
    content: str
    level: int = 2

    def __post_init__(self):
        if not 1 <= self.level <= 6:
            raise ValueError(f"Heading level must be 1-6, got {self.level}")

    def to_html(self) -> str:
        return f"<h{self.level}>{escape(self.content)}</h{self.level}>"

    def text(self) -> str:
        return self.content


@dataclass(frozen=True)
class ListBlock:
    items: Sequence[str] = ()
    ordered: bool = False

    def to_html(self) -> str:
        tag = "ol" if self.ordered else "ul"
        body = "".join(f"<li>{escape(item)}</li>" for item in self.items)
        return f"<{tag}>{body}</{tag}>"

    def text(self) -> str:
        return " ".join(self.items)


@dataclass(frozen=True)
class Table:
    rows: Sequence[Sequence[str]] = ()

    def to_html(self) -> str:
        body = "".join(
            "<tr>" + "".join(f"<td>{escape(cell)}</td>" for cell in row) + "</tr>"
            for row in self.rows
        )
        return f"<table><tbody>{body}</tbody></table>"

    def text(self) -> str:
        return " ".join(" ".join(row) for row in self.rows)


@dataclass(frozen=True)
class Image:
    src: str
    alt: str = ""

    def to_html(self) -> str:
        return f'<img src="{escape(self.src)}" alt="{escape(self.alt)}" />'

    def text(self) -> str:
        return ""


@dataclass(frozen=True)
class Embed:
    src: str

    def to_html(self) -> str:
        return (
            f'<iframe src="{escape(self.src)}" width="560" height="315" '
            'frameborder="0" allowfullscreen></iframe>'
        )

    def text(self) -> str:
        return ""


Block = Union[Paragraph, Heading, ListBlock, Table, Image, Embed]


def paragraph(*parts: Inline) -> Paragraph:
    return Paragraph(tuple(parts))


def table_placeholder(rows: int, cols: int) -> Table:
    """A rows x cols table whose cells read ``Cell i-j`` (1-based)."""
    if rows < 1 or cols < 1:
        raise ValueError("A table needs at least one row and one column")
    return Table(tuple(
        tuple(f"Cell {i + 1}-{j + 1}" for j in range(cols))
        for i in range(rows)
    ))


@dataclass
class Document:
    blocks: List[Block] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.blocks)

    def append(self, block: Block) -> "Document":
        self.blocks.append(block)
        return self

    def insert(self, index: int, block: Block) -> "Document":
        self._check_position(index, allow_end=True)
        self.blocks.insert(index, block)
        return self

    def replace(self, index: int, block: Block) -> "Document":
        self._check_position(index)
        self.blocks[index] = block
        return self

    def remove(self, index: int) -> Block:
        self._check_position(index)
        return self.blocks.pop(index)

    def move(self, source: int, target: int) -> "Document":
        """Move the block at ``source`` so it ends up at ``target``."""
        self._check_position(source)
        self._check_position(target)
        block = self.blocks.pop(source)
        self.blocks.insert(target, block)
        return self

    def insert_table(self, rows: int, cols: int, index: Optional[int] = None) -> "Document":
        table = table_placeholder(rows, cols)
        if index is None:
            return self.append(table)
        return self.insert(index, table)

    def set_heading_level(self, index: int, level: int) -> "Document":
        self._check_position(index)
        block = self.blocks[index]
        if not isinstance(block, Heading):
            raise TypeError(f"Block {index} is not a heading")
        self.blocks[index] = _replace(block, level=level)
        return self

    def to_html(self) -> str:
        return "".join(block.to_html() for block in self.blocks)

    def plain_text(self) -> str:
        texts = (block.text() for block in self.blocks)
        return re.sub(r"\s+", " ", " ".join(t for t in texts if t)).strip()

    def excerpt(self, length: int = DEFAULT_EXCERPT_LENGTH) -> str:
        """Plain-text summary, cut on a word boundary with an ellipsis when shortened."""
        text = self.plain_text()
        if len(text) <= length:
            return text
        cut = text[:length].rsplit(" ", 1)[0].rstrip(" ,.;:")
        return f"{cut}..."

    def _check_position(self, index: int, allow_end: bool = False) -> None:
        upper = len(self.blocks) if allow_end else len(self.blocks) - 1
        if not 0 <= index <= upper:
            raise IndexError(f"Block position {index} is out of range")
