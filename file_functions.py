import json
import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def get_json(dir, name):
    path = f"{name}.json" if dir is None else f"{dir}/{name}.json"
    with open(os.path.join(BASE_DIR, path), "r", encoding="utf-8") as file:
        return json.load(file)
