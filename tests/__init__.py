"""Tests for the Squeezebox Live integration."""
