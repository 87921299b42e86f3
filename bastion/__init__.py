"""Bastion: tower-defense map, pathing and placement core."""
