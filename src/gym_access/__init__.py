"""Gym access package.

Organized by feature modules (auth, users, attendance) with a thin Flask
controller layer over service/repository layers.
"""
