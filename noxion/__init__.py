"""Noxion: a Notion-backed blog engine with a per-blog plugin runtime."""

__version__ = "1.0.0"
