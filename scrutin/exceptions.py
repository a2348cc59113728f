"""
Exceptions métier du module de participation et de redressement.
"""
from typing import Optional


class ScrutinError(Exception):
    """Classe de base des erreurs applicatives"""
    pass


class UnauthorizedError(ScrutinError):
    """L'appelant n'est pas affecté à l'unité territoriale visée"""

    def __init__(self, caller_id, unit_label: str):
        self.caller_id = caller_id
        self.unit_label = unit_label
        super().__init__(f"User {caller_id} is not assigned to {unit_label}")


class ValidationRequiredError(ScrutinError):
    """
    Levée quand la validation remonte des erreurs ou des avertissements
    et que l'appelant n'a pas forcé la mise à jour.

    Ce n'est pas un échec : l'appelant affiche le résultat puis
    soumet à nouveau avec force_update=True, ou corrige sa saisie.
    """

    def __init__(self, result):
        self.result = result
        super().__init__(
            f"Validation requires confirmation "
            f"({len(result.errors)} error(s), {len(result.warnings)} warning(s))"
        )


class InvalidCorrectionError(ScrutinError):
    """Redressement incomplet ou modification interdite"""
    pass


class MissingJustificationError(InvalidCorrectionError):
    """Un redressement sans justification ne peut pas être enregistré"""

    def __init__(self, message: str = "A justification is required for any correction"):
        super().__init__(message)


class DuplicateCorrectionError(ScrutinError):
    """Un redressement existe déjà pour cette clé"""

    def __init__(self, kind: str, key: tuple):
        self.kind = kind
        self.key = key
        super().__init__(f"A {kind} correction already exists for {key}; update it instead")


class CorrectionNotFoundError(ScrutinError):
    """Aucun redressement avec cet identifiant"""
    pass


class StorageError(ScrutinError):
    """Échec opaque de la couche de persistance, jamais rejoué par le coeur"""

    def __init__(self, message: str, original: Optional[Exception] = None):
        self.original = original
        super().__init__(message)
