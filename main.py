#main.py
from cmus_presence.cli import main


if __name__ == "__main__":
    main()
