"""
Boutique catalog service.

Public dress catalog with fuzzy search plus an authenticated admin surface
for managing listings and their images.
"""
