"""Line-aligned splitting of submitted code into bounded chunks."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_LINES_PER_CHUNK = 600


@dataclass(frozen=True)
class Chunk:
    index: int
    text: str

    @property
    def line_count(self) -> int:
        return self.text.count("\n") + 1


def split_into_chunks(code: str, max_lines_per_chunk: int = DEFAULT_MAX_LINES_PER_CHUNK) -> list[Chunk]:
    """Split ``code`` into chunks of at most ``max_lines_per_chunk`` lines.

    Splitting only happens on newlines, so joining the chunk texts with "\\n"
    reproduces ``code`` exactly. An empty string yields one empty chunk so the
    review loop always runs at least once. A single line longer than any
    backend context window is not subdivided.
    """
    if max_lines_per_chunk < 1:
        raise ValueError(f"max_lines_per_chunk must be positive, got {max_lines_per_chunk}")

    lines = code.split("\n")
    return [
        Chunk(index=i, text="\n".join(lines[start : start + max_lines_per_chunk]))
        for i, start in enumerate(range(0, len(lines), max_lines_per_chunk))
    ]
