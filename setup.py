from setuptools import setup, find_packages

setup(
    name="asset-library",
    version="1.0.0",
    description="Digital asset library with QC approval workflow and service linking",
    packages=find_packages(include=["asset_library", "asset_library.*"]),
    python_requires=">=3.8",
    install_requires=[
        "Flask>=2.3.0",
        "Flask-SQLAlchemy>=3.0.0",
        "SQLAlchemy>=2.0.0",
        "gunicorn>=21.0.0",
    ],
    extras_require={
        "postgres": [
            "psycopg2-binary>=2.9.0",
        ],
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "pylint>=2.17.0",
        ]
    },
)
