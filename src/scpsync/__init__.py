"""scpsync - mirror a local directory tree to a remote host over scp."""

__version__ = "0.1.0"
