#app.py
from cmus_presence.ui.app import main

if __name__ == "__main__":
    main()
