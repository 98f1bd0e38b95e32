"""Document assembly for chatexport."""

from .assembler import MESSAGE_SEPARATOR, DocumentAssembler, assemble, assemble_document

__all__ = [
    "MESSAGE_SEPARATOR",
    "DocumentAssembler",
    "assemble",
    "assemble_document",
]
