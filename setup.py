"""
Setup script for wirehttp, an HTTP/1.x client working on raw sockets.
"""

from setuptools import setup

setup(
    name="wirehttp",
    version="0.1.0",
    description="HTTP/1.x client with a socket transport adapter, keep-alive pooling and lifecycle events",
    author="Vipin",
    author_email="vipin@example.com",
    packages=["wirehttp", "wirehttp.adapters", "wirehttp.cli", "wirehttp.utils"],
    install_requires=[
        "click>=8.0.0",
        "rich>=10.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "wirehttp=wirehttp.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Internet :: WWW/HTTP",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.11",
)
