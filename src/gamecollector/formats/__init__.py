"""Parsers for the platform-native formats the engine understands.

Three independent families:

- ``keyvalues`` -- nested, quoted, escape-aware key-value text (Valve VDF).
- ``columnar`` -- fixed-width tables printed by package-manager CLIs.
- ``blob`` -- versioned JSON envelopes, optionally encrypted (``crypto``).
"""
