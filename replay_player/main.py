# replay_player/main.py
"""
Main entry point for running the trajectory replay player.
This simply calls the CLI's main function.
"""
from .cli import main as cli_main


def main():
    """Runs the command-line interface for the player."""
    cli_main()


if __name__ == "__main__":
    main()
