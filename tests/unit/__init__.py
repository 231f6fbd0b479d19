"""Unit tests for the dynamic provider.

Fast, isolated tests for individual components. No processes, no network.
"""
