"""
photoselect - photo selection and delivery service

Serves a client gallery for a photo shoot stored in Google Cloud Storage:
- Resized web previews generated in the background
- Temporary-link listings with a time-boxed cache
- Client selections recorded as immutable JSON files
- Final delivery listing and zip export
- Daily retention sweep of expired files
"""

__version__ = "0.1.0"
__author__ = "photoselect"
__description__ = "Photo selection and delivery service backed by Google Cloud Storage"
