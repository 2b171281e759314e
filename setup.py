from setuptools import setup


setup(
    name="mood-importer",
    version="0.1.0",
    description="Import morning/midday/evening mood ratings from messy spreadsheet exports",
    packages=["mood_importer"],
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
    ],
    entry_points={
        "console_scripts": [
            "mood-import=mood_importer.cli:main",
        ]
    },
)
