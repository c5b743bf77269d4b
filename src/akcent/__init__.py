"""Akcent Dashboard — role-gated file distribution backend.

Customers browse and download files; staff manage users, invite codes,
files, FAQs, announcements, tags, collections, the forum and webhooks.
Every change is fanned out to connected browsers over one push channel.
"""

__version__ = "0.1.0"
