"""Backend package for the acronym API.

This package exposes the Flask app along with helper modules so they can be
imported as ``acronym_backend.<module>``. The file itself only marks
``acronym_backend`` as a package.
"""
