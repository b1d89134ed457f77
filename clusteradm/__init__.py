"""clusteradm: provision and manage storage cluster runtime artifacts across a fleet of hosts."""

__version__ = "0.1.0"
