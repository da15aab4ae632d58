"""Gym access package.

This package is organized by feature modules (credentials, membership,
attendance, occupancy, access) with a thin Flask controller layer and
service/repository layers underneath.
"""
