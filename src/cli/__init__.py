"""CLI tools for musicFavorites.

- ``python -m src.cli.cache`` - inspect, clear and refresh the act cache.

CLI modules use argparse and build their own dependencies instead of going
through the web app's composition root, because they run as one-shot
scripts rather than a long-lived server.
"""
