"""Exceptions du moteur de cross-selling.

Seules les erreurs de niveau exécution (``RunLevelError``) remontent à
l'appelant d'une exécution groupée. Les erreurs de configuration deviennent
des avertissements attachés à la règle, les erreurs produit sont consignées
dans le rapport.
"""


class CrossSellingError(Exception):
    """Erreur de base du moteur de cross-selling"""


class RunLevelError(CrossSellingError):
    """L'exécution n'a pas pu démarrer"""


class RuleNotFoundError(RunLevelError):
    def __init__(self, rule_id):
        self.rule_id = rule_id
        super().__init__(f"Rule not found: {rule_id}")


class RuleRepositoryUnavailableError(RunLevelError):
    """Le dépôt des règles est injoignable"""


class CatalogUnavailableError(RunLevelError):
    """Le catalogue produits n'a pas pu être chargé"""


class RuleConfigurationError(CrossSellingError):
    """Condition ou critère invalide (champ inconnu, opérateur incompatible...)"""

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message)


class ProductDataError(CrossSellingError):
    """Donnée produit de forme inattendue"""

    def __init__(self, product_id: str, message: str):
        self.product_id = product_id
        super().__init__(message)


class AssociationAlreadyExistsError(CrossSellingError):
    def __init__(self, source_product_id: str, target_product_id: str):
        self.source_product_id = source_product_id
        self.target_product_id = target_product_id
        super().__init__(f"Association {source_product_id} -> {target_product_id} already exists")
