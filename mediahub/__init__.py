"""Asyncio stream hub routing live audio and video from publishers to subscribers, with statistics and RTMP helpers."""

__version__ = "0.1.0"