from pathlib import Path

from setuptools import find_packages, setup

setup(
    name='acmesync',
    version='0.1.0',
    python_requires='>=3.10',
    description='Async reconciliation of ACME certificate orders',
    long_description=(Path(__file__).parent / 'README.md').read_text('utf-8'),
    long_description_content_type='text/markdown',
    license='MIT',
    packages=find_packages('src'),
    package_dir={'': 'src'},
    include_package_data=True,
    install_requires=[
        'anyio',
        'httpx',
        'cryptography',
        'typing-extensions; python_version<"3.11"',
        'orjson',
        'python-dateutil',
        'serpyco-rs',
    ],
    extras_require={
        'test': [
            'pytest',
            'trio>=0.32.0',
        ],
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Security :: Cryptography',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ],
)
