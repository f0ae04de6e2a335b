"""
Client library for an on-chain survey ledger.

Keep package import side-effects to a minimum; import components from their
modules (``surveychain.ledger.factory``, ``surveychain.surveys.repository``...).
"""

__version__ = "0.1.0"
