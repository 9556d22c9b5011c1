"""doc2audiobook - narrate TXT, DOCX and PDF documents into MP3 audiobooks."""

__version__ = "0.1.0"
