"""Setup script for the conversational client."""

from setuptools import setup, find_packages

setup(
    name="watch-talk",
    version="1.0.0",
    description="Conversational client with persisted history and spoken replies",
    packages=find_packages(include=['watch_talk', 'watch_talk.*']),
    python_requires=">=3.11",
    install_requires=[
        "python-dotenv>=1.0.0",
        "httpx>=0.25.0",
        "elevenlabs>=2.0.0",
        "pygame>=2.5.0",
        "structlog>=23.0.0",
        "click>=8.2.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "watch-talk=watch_talk.cli.main:cli",
        ],
    },
)
