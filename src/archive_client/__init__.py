"""
Archive client: request orchestration for a remote document-archive service.

Selects credentials per caller, builds and pages archive requests, turns
responses into documents or stored attachments, caches search results and
reports every operation and failure to a notification sink.
"""

__version__ = "0.1.0"
