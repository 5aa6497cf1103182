"""fixcnchar: replace full-width Chinese punctuation with half-width ASCII"""

__version__ = "1.0.0"
