"""Enumerations shared by models, schemas and services."""

from enum import Enum


class CaseCategory(str, Enum):
    PUBLIC_LIGHTING = "PUBLIC_LIGHTING"
    POTHOLE = "POTHOLE"
    GARBAGE_COLLECTION = "GARBAGE_COLLECTION"
    SIDEWALK_OBSTRUCTION = "SIDEWALK_OBSTRUCTION"
    WATER_LEAK = "WATER_LEAK"
    OTHER = "OTHER"


class CaseStatus(str, Enum):
    RECEIVED = "RECEIVED"
    IN_PROGRESS = "IN_PROGRESS"
    AWAITING_UPDATE = "AWAITING_UPDATE"
    COMPLETED = "COMPLETED"


class PhotoKind(str, Enum):
    REPORT = "REPORT"      # attached by the citizen when filing
    UPDATE = "UPDATE"      # attached by staff alongside a status change


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class EmployeeRole(str, Enum):
    PUBLIC_LIGHTING = "PUBLIC_LIGHTING"
    POTHOLE = "POTHOLE"
    GARBAGE_COLLECTION = "GARBAGE_COLLECTION"
    SIDEWALK_OBSTRUCTION = "SIDEWALK_OBSTRUCTION"
    WATER_LEAK = "WATER_LEAK"
    OTHER = "OTHER"
    ADMINISTRATIVE = "ADMINISTRATIVE"  # sees every category
