"""Readers that turn interface sources into declarations for the generator."""
