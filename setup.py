from setuptools import setup, find_packages

setup(
    name="vodrescue",
    version="0.3.0",
    packages=find_packages(include=["vodrescue", "vodrescue.*"]),
    install_requires=[
        "rich",
        "requests",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "vodrescue=vodrescue.cli:main",
        ],
    },
    python_requires=">=3.8",
    author="",
    description="Bulk download Twitch VODs, chat logs and metadata before they expire, and cut lossless clips",
    long_description=open("README.md", encoding="utf-8").read() if __file__ else "",
    long_description_content_type="text/markdown",
)
