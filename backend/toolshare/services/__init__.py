"""Service layer for the booking lifecycle, disputes and reviews."""
