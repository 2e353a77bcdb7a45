"""Presets ("engrams") — named, ordered selections of skills."""
