# SPDX-License-Identifier: MIT
"""Core data model, target expansion and templating."""
