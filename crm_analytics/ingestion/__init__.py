"""
Snapshot file I/O.

Modules
-------
snapshot : load_snapshot() / write_snapshot() for bare or ``_meta``-enveloped
           JSON snapshot files.
"""
