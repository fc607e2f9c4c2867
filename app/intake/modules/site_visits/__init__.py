"""
Site Visits module.

Intake records captured on site: customer contact details, location, the
requested service (Roof / Ceiling / Gutters) with its service-specific
measurements, and photo/drawing/video attachments.
"""
