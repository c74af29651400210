"""
Pytest configuration for Django tests.
"""
import os

# pytest-django reads this before configuring Django
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'furniture_store.settings')
