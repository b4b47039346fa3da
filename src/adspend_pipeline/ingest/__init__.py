"""Source reading (CSV files, directories, globs, URLs) and the embedded
reference dataset used when a source is unavailable.
"""
