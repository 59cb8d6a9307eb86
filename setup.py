#!/usr/bin/env python3
"""
Setup configuration for anisong-playlist
Playlists from the theme songs of the anime you watched, one quarter at a time
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "spotipy>=2.23.0",
    "click>=8.1.7",
    "rich-click>=1.7.0",
    "rich>=13.7.0",
    "pyyaml>=6.0.1",
    "tqdm>=4.66.1",
    "rapidfuzz>=3.5.0",
]

setup(
    name="anisong-playlist",
    version="0.1.0",
    author="anisong-playlist",
    description="Match anime theme songs to Spotify tracks and build playlists per broadcast quarter",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["anisong_playlist", "anisong_playlist.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
        ],
    },
    entry_points={
        "console_scripts": [
            "anisong=anisong_playlist.cli:main",
        ],
    },
    keywords="anime spotify playlist theme songs matching cli",
)
