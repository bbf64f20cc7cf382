"""
Compta - noyau d'integrite comptable.
Ecritures en partie double, paiements de factures et rapprochement bancaire.
"""
__version__ = "0.1.0"
