"""Task host core -- errors and configuration shared by every layer.

Architecture::

    errors.py          Structured error hierarchy (TaskHostError and friends)
    config/            ProviderSettings (pydantic-settings) + get_settings()
"""
