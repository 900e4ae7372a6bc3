"""
Erreurs métier du jeu.

- NotFoundError   : salle / joueur référencé absent (→ 404, reset de session côté client)
- ValidationError : saisie refusée localement, aucune mutation (→ 400)
- WriteError      : écriture refusée par le store, opération abandonnée (→ 500)

Le message de chaque erreur est destiné à l'utilisateur final.
"""


class GameError(Exception):
    """Base des erreurs remontées par les services de jeu."""

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.__class__.__name__


class NotFoundError(GameError):
    pass


class ValidationError(GameError):
    pass


class WriteError(GameError):
    pass
