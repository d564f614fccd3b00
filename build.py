"""Assemble the download page into dist/ from webpage/ and the united.* files."""

from sitebuild.assemble import main


if __name__ == "__main__":
    raise SystemExit(main())
