"""
Setup script for repricing_engine package.
"""

from setuptools import setup, find_packages

setup(
    name="repricing-engine",
    version="1.0.0",
    description="Moteur de simulation de prix et de repricing IA (brouillons de prix, mode safe/auto)",
    author="PricEye Team",
    packages=find_packages(exclude=["scripts", "scripts.*"]),
    install_requires=[
        "supabase>=2.0.0",
        "pandas>=2.0.0",
        "python-dotenv>=1.0.0",
        "python-dateutil>=2.8.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.9",
)
