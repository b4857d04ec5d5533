# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests for the smart context engine.

These tests drive the MCP server and service end to end over small projects
written to disk.
"""
