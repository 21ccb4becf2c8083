#!/usr/bin/env python3
"""
Setup script for the real-time messaging (RTM) client
"""

from setuptools import setup, find_namespace_packages

setup(
    name="rtm-client",
    version="0.1.0",
    description="Client for a messaging platform's real-time WebSocket channel",
    packages=find_namespace_packages(include=["rtm_client*", "rtm_shared*"]),
    install_requires=[
        "websockets>=15.0",
        "requests>=2.32.3",
        "typer>=0.12.3",
        "rich>=13.9.2",
        "aioconsole>=0.8.1",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.4.2",
            "pytest-asyncio>=1.2.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        'console_scripts': [
            'rtm=rtm_client.rtm_cli:main',
        ],
    },
)
