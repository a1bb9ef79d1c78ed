"""
manga-lens: capture, crop and translate Japanese manga pages with Gemini.
"""

__version__ = "0.3.0"
