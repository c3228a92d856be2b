import os

from .main import run

if __name__ == "__main__":
    run(host=os.getenv("NOVANT_HOST", "0.0.0.0"), port=int(os.getenv("NOVANT_PORT", "8000")))
