"""Insect API Setup - Config, Dependencies."""
