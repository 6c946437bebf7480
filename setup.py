from setuptools import setup, find_packages

# Create MANIFEST.in file if it doesn't exist
manifest_content = """
# Include the example configuration
recursive-include diffdeletes_config *.yaml
# Include README
include README.md
"""

with open('MANIFEST.in', 'w') as f:
    f.write(manifest_content)

setup(
    name='execute-diff-deletes',
    version='0.1.0',
    description='Removes the triples computed by a diff job from the triplestore',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=["diffdeletes_test", "diffdeletes_test.*"]),
    include_package_data=True,  # This tells setuptools to include files from MANIFEST.in
    entry_points={
        'console_scripts': [
            'execute-diff-deletes=diffdeletes.main.main:run_server',
        ],
    },

    license='Apache License 2.0',
    install_requires=[
        "python-dotenv",
        "rdflib>=7.0.0",
        "PyYAML",
        "pydantic>=2",
        'aiohttp',
        'fastapi',
        'uvicorn',
        'starlette',
    ],
    extras_require={
        'test': [
            'pytest',
            'httpx',
        ],
    },

    classifiers=[
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.11',
)
