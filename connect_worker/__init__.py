"""
DocuSign Connect queue worker.

Listens on a Pub/Sub subscription for envelope notifications and, for
completed envelopes carrying a business key, stores the combined document
under a path derived from that key.
"""

__version__ = "0.1.0"
