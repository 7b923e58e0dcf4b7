"""
Setup script for the kickchat library.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="kickchat",
    version="0.1.0",
    author="Jan Bernardic",
    author_email="janbernardic1@gmail.com",
    description="Asyncio client for the Kick REST API and live chat",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/jbernardic/kickchat",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Communications :: Chat",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    python_requires=">=3.9",
    install_requires=[
        "aiohttp>=3.8.0",
        "websockets>=10.0",
        "cloudscraper>=1.2.60",
        "requests>=2.25",
        "ua-generator>=1.0.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    keywords="chat, livestream, kick, streaming, realtime, pusher",
    project_urls={
        "Bug Reports": "https://github.com/jbernardic/kickchat/issues",
        "Source": "https://github.com/jbernardic/kickchat",
    },
)
