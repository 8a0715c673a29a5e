"""Fixture modules, commands and config files for the appboot tests."""
