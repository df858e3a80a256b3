"""Setup configuration for the Butler Discord bot."""

from setuptools import setup, find_packages

setup(
    name="butler",
    version="0.0.1",
    description="A Discord bot that relays mod-mail conversations between DMs and staff threads",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "prompt_toolkit>=3.0",
        "aiosqlite>=0.20",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "butler=butler.main:main",
        ],
    },
)
