from src.pets.cli import app

# python -m src.pets --api-key ... -o data/pets.json
if __name__ == "__main__":
    app()
