"""
Samrambhak
Community, business and jobs platform backend.

Architecture:
- PostgreSQL: all platform data (users, posts, communities, businesses, jobs)
- MongoDB: admin activity log
- Resend: verification emails
"""

__version__ = "1.0.0"
