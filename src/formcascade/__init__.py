"""
Cascading Form Engine (formcascade) Package

Drives the dependent selects of a registration form: which fields exist,
which options they offer, and whether a field is shown to the user or
auto-resolved and hidden.

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - HTML, DOM or widget libraries
    - CRM field mapping or form submission
    - How a UI renders a FieldState

This package defines FORM STATE only.

UI adapters subscribe to the FieldStateStore and render from it.
User input enters through FormSession.handle_input().
"""

__version__ = "0.1.0"
