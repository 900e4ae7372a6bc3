"""
Configuration de l'application (Settings)
=========================================

Rôle
----
- Centraliser les paramètres de l'app (nom, host/port, chemins, règles de jeu…).
- Les valeurs par défaut conviennent pour un environnement de dev local.
- Les variables peuvent être surchargées via un fichier `.env` ou l'environnement.

Intégrations
------------
- `pydantic-settings` charge automatiquement les variables d'env et `.env`.
- Les services/routers importent `from app.config.settings import settings`.

Bonnes pratiques
----------------
- `GENERATION_ENDPOINT` vide => génération locale (tables de questions/indices).
- `PERSIST_STORE=false` => store purement en mémoire (tests, démo).
- `DATA_DIR` calcule un chemin relatif au repo : `<repo>/app/data`.

Exemples de `.env`
------------------
APP_NAME="Akinator Bingo (Staging)"
PORT=8080
ROOM_CODE_LENGTH=6
GENERATION_ENDPOINT="http://localhost:54321/functions/v1"
DATA_DIR="/var/opt/akinator-bingo/data"
LOG_LEVEL="DEBUG"
"""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
import os


class Settings(BaseSettings):
    # Nom du service (apparaît dans /health)
    APP_NAME: str = "Akinator Bingo Backend"
    # Bind réseau (FastAPI / Uvicorn)
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Fronts autorisés (CORS)
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    # Répertoire des fichiers persistés (snapshot du store)
    # Par défaut: <repo>/app/data
    DATA_DIR: str = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")
    STORE_FILENAME: str = "store.json"
    PERSIST_STORE: bool = True

    # Règles de jeu
    ROOM_CODE_LENGTH: int = 6
    ROOM_CODE_MAX_ATTEMPTS: int = 10  # tirages max si collision de code
    MIN_READY_PLAYERS: int = 2
    MAX_NAME_LENGTH: int = 50

    # Service distant de génération (questions / indices). None => tables locales.
    GENERATION_ENDPOINT: Optional[str] = None

    # Paramétrage pydantic-settings :
    # - lit le fichier .env (UTF-8) si présent
    # - ignore les clés supplémentaires pour éviter les erreurs
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


# Instance unique importable partout : `settings`
settings = Settings()
