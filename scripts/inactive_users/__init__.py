"""Inactive user blocking job.

Scans an Auth0 tenant through the Management API user search, finds users
whose last login (or, for users who never logged in, creation date) is older
than a threshold, and blocks them while honouring the API's rate limits.
"""
