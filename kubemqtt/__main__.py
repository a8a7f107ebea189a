"""
Entry point for python -m kubemqtt
"""
from .app import main

if __name__ == "__main__":
    main()
