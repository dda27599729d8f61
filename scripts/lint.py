import subprocess
import sys


def start():
    cmd = ';'.join(
        [
            "echo Flake8:",
            'flake8 userop_builder tests',
            "echo Mypy:",
            'mypy userop_builder --ignore-missing-imports',
        ])
    completed = subprocess.run(cmd, shell=True)
    sys.exit(completed.returncode)


if __name__ == "__main__":
    start()
