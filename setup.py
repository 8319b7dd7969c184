from setuptools import setup, find_packages

setup(
    name='neochain',
    version='0.1.0',
    description='Lazy, chainable Cypher query builder with mass updates for neo4j.',
    long_description=open('README.rst').read(),
    zip_safe=True,
    license='MIT',
    packages=find_packages(exclude=('test', 'test.*')),
    keywords='graph neo4j cypher query builder OGM',
    python_requires='>=3.10',
    install_requires=['neo4j>=5.0'],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        'Intended Audience :: Developers',
        'Operating System :: OS Independent',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python',
        'Topic :: Software Development :: Libraries :: Python Modules',
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
    ])
