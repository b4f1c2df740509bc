from setuptools import setup, find_packages

setup(
    name='grammar-bindgen',
    version='0.1.0',
    py_modules=['bindgen', 'generator'],
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.9',
    install_requires=[
        'lark',
        'pydantic>=2.0',
        'setuptools',
        'tree-sitter>=0.23',
    ],
    extras_require={
        'test': ['pytest', 'tree-sitter-python'],
    },
    entry_points={
        'console_scripts': [
            'bindgen = bindgen:main',
        ],
    },
)
