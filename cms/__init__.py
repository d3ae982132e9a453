"""
Backend package for the image-filter CMS.

This package provides a FastAPI application over Firestore and object
storage for managing categories, filters, onboarding sliders and prompt
categories, including drag-and-drop reordering of each ordered collection.
"""
