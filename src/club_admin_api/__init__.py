"""
# Club Admin API

Administrative backend for the student-club platform: admins manage clubs, events and staff
users, clubs manage their own profile and events, and staff users act within their permissions.
Every significant action is written to an audit log that administrators can browse.
"""

__version__ = "1.0.0"
