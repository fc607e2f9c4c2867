"""
Central constants for the intake application.
"""
from __future__ import annotations

SERVICE_TYPES = ("Roof", "Ceiling", "Gutters")

VISIT_STATUSES = ("Pending", "Running", "Complete", "Cancel")

# Sri Lanka administrative districts offered on the intake form
DISTRICTS = frozenset({
    "Colombo", "Gampaha", "Kalutara", "Kandy", "Matale", "Nuwara Eliya",
    "Galle", "Matara", "Hambantota", "Jaffna", "Kilinochchi", "Mannar",
    "Vavuniya", "Mullaitivu", "Batticaloa", "Ampara", "Trincomalee",
    "Kurunegala", "Puttalam", "Anuradhapura", "Polonnaruwa", "Badulla",
    "Monaragala", "Ratnapura", "Kegalle",
})

# Ceiling type -> price per square foot (LKR)
CEILING_PRICES = {
    "2 x 2 Eltoro Ceiling": 180,
    "2 x 2 PVC Ceiling": 250,
    "Panel Flat Ceiling": 360,
    "Panel Box Ceiling": 430,
}

ATTACHMENT_KINDS = ("image", "drawing", "video")
