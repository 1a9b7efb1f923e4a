"""Fijian lexicon curation pipeline

Segments and parses dictionary text, filters known entries against the
pending and verified stores, and indexes the rest for hybrid retrieval.
"""

__version__ = "0.1.0"
