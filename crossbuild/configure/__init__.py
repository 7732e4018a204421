# SPDX-License-Identifier: MIT
"""Configuration loading and program discovery."""
