"""Template field store for PDF form templates.

Normalizes page-ratio positioned template fields, stores per-document field
values, migrates legacy ``coordinateFields`` JSON blobs into structured rows and
reports document completion against required fields.
"""

__version__ = "0.1.0"
