"""
Configuration package for the HLS downloader.
"""

from .settings import Config

__all__ = ['Config']
