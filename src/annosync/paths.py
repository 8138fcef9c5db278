"""Vault path and line helpers shared by the merge engine and the resolver."""


def join_path(*segments: str) -> str:
    """Join vault path segments into a normalized relative POSIX path.

    Empty segments, ``.`` parts and redundant slashes are dropped, so a root
    location of ``"/"`` and an empty sub folder both disappear:

        join_path("/", "", "Book.md") -> "Book.md"
        join_path("Reading/", "/Fiction", "Dune.md") -> "Reading/Fiction/Dune.md"
    """
    parts: list[str] = []
    for segment in segments:
        for part in segment.split("/"):
            if part and part != ".":
                parts.append(part)
    return "/".join(parts)


def detect_newline(text: str) -> str:
    """Return the line break used for new lines (CRLF if present anywhere, else LF)."""
    return "\r\n" if "\r\n" in text else "\n"


def get_lines_in_string(text: str) -> list[str]:
    """Split text into lines on ``\\n``.

    A CRLF line keeps its trailing ``\\r``, so a document with mixed line
    endings splits on every line and ``"\\n".join()`` restores it exactly.
    """
    return text.split("\n")
