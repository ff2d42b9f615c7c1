"""Image intake package for API adapters.

Architectural role:
- Validates user-selected images and converts them to data URLs.
- Converts data URLs into Gemini inline-data parts.
"""
