"""Run the apphost command line tool."""

from apphost.tool.apphost import main

if __name__ == "__main__":
    main()
