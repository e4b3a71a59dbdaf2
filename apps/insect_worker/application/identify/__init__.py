"""Insect Identification Pipeline."""
