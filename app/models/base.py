"""Declarative base shared by all models"""
from app.database import Base

__all__ = ["Base"]
