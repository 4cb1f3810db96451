"""
API module - FastAPI routers, one per action handler.

Routes are organized by feature:
- mobile-auth, password-reset
- profiles, upload-avatar, email verification
- posts, manage-community, businesses, manage-jobs
- promotions, notifications
- admin-manage, admin-post-actions, manage-blocked-words
"""
