"""
Base Repository generique pour le noyau comptable
Fournit les operations de base pour tous les models

Ce module contient:
- BaseRepository: operations sans isolation societe (lignes enfants)
- CompanyScopedRepository: operations avec isolation societe OBLIGATOIRE

Pour TOUS les models avec company_id, utiliser CompanyScopedRepository.
Les lignes enfants (lignes d'ecriture, paiements) heritent de l'isolation
de leur parent et passent par BaseRepository.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session, Query

from compta.models.base import Base

logger = logging.getLogger(__name__)

# Type generique pour le model
ModelType = TypeVar("ModelType", bound=Base)

# Constantes de pagination
MAX_PAGE_SIZE = 100  # Limite absolue par requete
DEFAULT_PAGE_SIZE = 20  # Taille par defaut


@dataclass
class PaginatedResult(Generic[ModelType]):
    """
    Resultat pagine avec metadonnees.

    Attributes:
        items: Liste des elements de la page courante
        total: Nombre total d'elements
        page: Numero de page (1-indexed)
        page_size: Taille de la page
    """
    items: List[ModelType]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        """Calcule le nombre total de pages."""
        return (self.total + self.page_size - 1) // self.page_size if self.total > 0 else 0

    @property
    def has_next(self) -> bool:
        """True si une page suivante existe."""
        return self.page < self.total_pages


class RepositoryException(Exception):
    """Exception de base pour les repositories"""
    pass


class PaginationError(RepositoryException):
    """Erreur de pagination (page invalide, taille trop grande)"""
    pass


class CompanyIsolationError(RepositoryException):
    """Model sans company_id utilise avec un repository isole"""
    pass


def paginate_query(query: Query, page: int, page_size: int) -> PaginatedResult:
    """Applique la pagination bornee a une query deja filtree."""
    if page < 1:
        raise PaginationError(f"Page doit etre >= 1, recu: {page}")

    if page_size > MAX_PAGE_SIZE:
        raise PaginationError(
            f"page_size maximum est {MAX_PAGE_SIZE}, recu: {page_size}"
        )

    if page_size < 1:
        raise PaginationError(f"page_size doit etre >= 1, recu: {page_size}")

    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()

    return PaginatedResult(items=items, total=total, page=page, page_size=page_size)


class BaseRepository(Generic[ModelType]):
    """
    Repository generique sans isolation societe.

    Usage:
        class PaymentRepository(BaseRepository[Payment]):
            model = Payment
    """

    # Type du model - doit etre defini dans les sous-classes
    model: Type[ModelType]

    def __init__(self, session: Session):
        """
        Args:
            session: Session SQLAlchemy active
        """
        self.session = session

    def get(self, id: int) -> Optional[ModelType]:
        """Recupere un objet par son ID"""
        return self.session.query(self.model).filter(self.model.id == id).first()

    def create(self, data: Dict[str, Any]) -> ModelType:
        """
        Cree un nouvel objet.

        Args:
            data: Dictionnaire avec les donnees de l'objet

        Returns:
            L'objet cree (flush pour obtenir l'ID)
        """
        obj = self.model(**data)
        self.session.add(obj)
        self.session.flush()  # Pour obtenir l'ID
        return obj

    def count(self) -> int:
        return self.session.query(self.model).count()


class CompanyScopedRepository(Generic[ModelType]):
    """
    Repository avec isolation par societe OBLIGATOIRE.

    TOUTES les operations sont filtrees par company_id: un objet d'une
    autre societe est traite comme inexistant.

    Usage:
        class InvoiceRepository(CompanyScopedRepository[Invoice]):
            model = Invoice

        repo = InvoiceRepository(session, company_id=1)
        invoice = repo.get(42)  # None si invoice.company_id != 1
    """

    model: Type[ModelType]

    def __init__(self, session: Session, company_id: int):
        """
        Args:
            session: Session SQLAlchemy active
            company_id: ID de la societe pour TOUTES les operations

        Raises:
            CompanyIsolationError: Si le model n'a pas d'attribut company_id
        """
        self.session = session
        self._company_id = company_id

        if not hasattr(self.model, "company_id"):
            raise CompanyIsolationError(
                f"Le model {self.model.__name__} n'a pas d'attribut company_id. "
                "Utilisez BaseRepository pour les lignes enfants."
            )

    @property
    def company_id(self) -> int:
        """Retourne le company_id (lecture seule)."""
        return self._company_id

    def _company_query(self) -> Query:
        """
        Retourne une Query pre-filtree par company_id.
        Toutes les operations DOIVENT l'utiliser.
        """
        return self.session.query(self.model).filter(
            self.model.company_id == self._company_id
        )

    def get(self, id: int) -> Optional[ModelType]:
        """
        Recupere un objet par ID avec isolation societe.

        Returns:
            L'objet trouve ou None (si non trouve OU autre societe)
        """
        return self._company_query().filter(self.model.id == id).first()

    def get_for_update(self, id: int) -> Optional[ModelType]:
        """
        Recupere un objet en posant un verrou de ligne (SELECT ... FOR UPDATE).
        Le verrou est libere au commit/rollback de la transaction courante.
        """
        return (
            self._company_query()
            .filter(self.model.id == id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def create(self, data: Dict[str, Any]) -> ModelType:
        """
        Cree un nouvel objet avec company_id force.

        Le company_id est TOUJOURS celui du repository, meme si
        un company_id different est passe dans data.
        """
        data_with_company = {**data, "company_id": self._company_id}

        obj = self.model(**data_with_company)
        self.session.add(obj)
        self.session.flush()
        return obj

    def update(self, id: int, data: Dict[str, Any]) -> Optional[ModelType]:
        """
        Met a jour un objet existant avec verification societe.
        Le company_id ne peut JAMAIS etre modifie.

        Returns:
            L'objet mis a jour ou None si non trouve (ou autre societe)
        """
        obj = self.get(id)
        if obj is None:
            return None

        if "company_id" in data:
            logger.warning(
                f"Tentative de modification de company_id ignoree pour "
                f"{self.model.__name__} id={id}"
            )
            data = {k: v for k, v in data.items() if k != "company_id"}

        for key, value in data.items():
            if hasattr(obj, key):
                setattr(obj, key, value)

        self.session.flush()
        return obj

    def count(self) -> int:
        """Compte le nombre d'objets de la societe courante."""
        return self._company_query().count()

    def paginate(
        self,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        query: Optional[Query] = None
    ) -> PaginatedResult[ModelType]:
        """
        Recupere une page de resultats avec isolation societe.

        Args:
            page: Numero de page (1-indexed, defaut 1)
            page_size: Nombre d'elements par page (defaut 20, max 100)
            query: Query personnalisee (doit deja inclure le filtrage societe!)

        Raises:
            PaginationError: Si page < 1 ou page_size > MAX_PAGE_SIZE
        """
        if query is None:
            query = self._company_query()
        return paginate_query(query, page, page_size)
