# SPDX-License-Identifier: MIT
"""Filesystem and version control helpers."""
