"""
Schemas module - request/response schemas for the action handlers.
"""

from samrambhak.schemas.schemas import ActionRequest

__all__ = ["ActionRequest"]
