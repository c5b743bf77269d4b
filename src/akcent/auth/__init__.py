"""Authentication and authorization.

Learn: Users log in with username/password and receive a signed session
cookie. The same token is accepted as a Bearer header so the CLI can talk
to the API without a browser. Authorization is role based: every staff
endpoint names a permission, and the permission table decides which roles
hold it.
"""
