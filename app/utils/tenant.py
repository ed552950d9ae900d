from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, Optional, Type, TypeVar

from sqlalchemy import event
from sqlalchemy.orm import Session, with_loader_criteria
from sqlmodel import SQLModel, select

from app.enums import UserRole
from app.exceptions import NotFound, ScopeViolation
from app.utils.logger import get_logger

TENANT_OPTION_COMPANY = "tenant_company_id"
TENANT_OPTION_BYPASS = "tenant_bypass"

_STRICT_TENANT = os.getenv("TENANT_STRICT", "1").strip().lower() not in {
    "0",
    "false",
    "no",
}

_TENANT_COMPANY_MODELS: list[Type[SQLModel]] = []
_TENANT_MODELS_READY = False
_TENANT_LISTENERS_INSTALLED = False

ModelT = TypeVar("ModelT", bound=SQLModel)

logger = get_logger("TenantScope")


def _coerce_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        value_int = int(value)
    except (TypeError, ValueError):
        return None
    return value_int if value_int > 0 else None


_ROLE_ALIASES = {
    "owner": UserRole.owner,
    "propietario": UserRole.owner,
    "admin": UserRole.admin,
    "administrador": UserRole.admin,
    "seller": UserRole.seller,
    "vendedor": UserRole.seller,
}


def _normalize_role(role: Any) -> UserRole:
    if isinstance(role, UserRole):
        return role
    normalized = str(role or "owner").strip().lower()
    if normalized not in _ROLE_ALIASES:
        raise ScopeViolation(f"Rol desconocido: {role}.")
    return _ROLE_ALIASES[normalized]


@dataclass(frozen=True)
class Identity:
    """Identidad ya resuelta del actor (empresa, rol y almacenes permitidos).

    Se pasa explicitamente como primer argumento de cada operacion; no hay
    contexto global de empresa.
    """

    company_id: int
    role: UserRole = UserRole.owner
    branch_ids: FrozenSet[int] = field(default_factory=frozenset)
    user_id: Optional[int] = None

    @classmethod
    def build(
        cls,
        company_id: Any,
        role: Any = UserRole.owner,
        branch_ids: Iterable[Any] | None = None,
        user_id: Any = None,
    ) -> "Identity":
        company = _coerce_int(company_id)
        if company is None:
            raise ScopeViolation("Empresa no resuelta para la identidad.")
        role_value = _normalize_role(role)
        branches = frozenset(
            b for b in (_coerce_int(v) for v in (branch_ids or [])) if b is not None
        )
        return cls(
            company_id=company,
            role=role_value,
            branch_ids=branches,
            user_id=_coerce_int(user_id),
        )

    @property
    def sees_all_branches(self) -> bool:
        return self.role in (UserRole.owner, UserRole.admin)

    def can_access_branch(self, branch_id: Any) -> bool:
        if self.sees_all_branches:
            return True
        return _coerce_int(branch_id) in self.branch_ids


def ensure_in_scope(identity: Identity, entity: Any) -> Any:
    """Verifica que la entidad pertenezca a la empresa (y almacen) del actor.

    Raises:
        ScopeViolation: la entidad existe pero esta fuera del alcance.
    """
    entity_company = _coerce_int(getattr(entity, "company_id", None))
    if entity_company != identity.company_id:
        logger.warning(
            "Acceso fuera de empresa: %s#%s (empresa %s) por empresa %s",
            type(entity).__name__,
            getattr(entity, "id", None),
            entity_company,
            identity.company_id,
        )
        raise ScopeViolation(f"{type(entity).__name__} fuera del alcance.")
    if hasattr(entity, "branch_id") and not identity.can_access_branch(
        getattr(entity, "branch_id", None)
    ):
        logger.warning(
            "Acceso fuera de almacen: %s#%s (almacen %s) por rol %s",
            type(entity).__name__,
            getattr(entity, "id", None),
            getattr(entity, "branch_id", None),
            identity.role.value,
        )
        raise ScopeViolation(f"{type(entity).__name__} fuera del almacen permitido.")
    return entity


def fetch_in_scope(
    session: Session,
    identity: Identity,
    model: Type[ModelT],
    entity_id: Any,
    *,
    for_update: bool = False,
) -> ModelT:
    """Carga una entidad por id sin filtro de empresa y aplica el guard.

    Distingue "no existe" (``NotFound``) de "existe pero es ajena"
    (``ScopeViolation``) para auditoria.
    """
    statement = select(model).where(model.id == _coerce_int(entity_id))
    if for_update:
        statement = statement.with_for_update()
    statement = statement.execution_options(**{TENANT_OPTION_BYPASS: True})
    entity = session.exec(statement).first()
    if entity is None:
        raise NotFound(f"{model.__name__} {entity_id} no encontrado.")
    return ensure_in_scope(identity, entity)


def bind_session_tenant(session: Session, identity: Identity) -> Session:
    """Asocia la identidad a la sesion para el filtro a nivel de almacenamiento."""
    session.info[TENANT_OPTION_COMPANY] = identity.company_id
    return session


def _collect_models() -> list[Type[SQLModel]]:
    seen: set[Type[SQLModel]] = set()
    stack: list[Type[Any]] = [SQLModel]
    while stack:
        base = stack.pop()
        for sub in base.__subclasses__():
            stack.append(sub)
            if getattr(sub, "__table__", None) is not None:
                seen.add(sub)
    return list(seen)


def _refresh_tenant_models() -> None:
    global _TENANT_COMPANY_MODELS, _TENANT_MODELS_READY
    company_models: list[Type[SQLModel]] = []
    for model in _collect_models():
        table = getattr(model, "__table__", None)
        if table is not None and "company_id" in table.c:
            company_models.append(model)
    _TENANT_COMPANY_MODELS = company_models
    _TENANT_MODELS_READY = True


def _ensure_models_ready() -> None:
    if not _TENANT_MODELS_READY:
        _refresh_tenant_models()


def _statement_froms(statement: Any) -> Iterable[Any]:
    getter = getattr(statement, "get_final_froms", None)
    if callable(getter):
        return getter() or []
    return []


def _statement_requires_company(statement: Any) -> bool:
    for from_ in _statement_froms(statement):
        cols = getattr(from_, "c", None)
        if cols is not None and "company_id" in cols:
            return True
    return False


def _apply_tenant_criteria(orm_execute_state) -> None:
    if orm_execute_state.execution_options.get(TENANT_OPTION_BYPASS):
        return
    if not orm_execute_state.is_select:
        return

    company_id = _coerce_int(orm_execute_state.session.info.get(TENANT_OPTION_COMPANY))
    if company_id is None:
        return

    statement = orm_execute_state.statement
    if not _statement_requires_company(statement):
        return

    _ensure_models_ready()
    for model in _TENANT_COMPANY_MODELS:
        statement = statement.options(
            with_loader_criteria(
                model,
                lambda cls: cls.company_id == company_id,
                include_aliases=True,
            )
        )
    orm_execute_state.statement = statement


def _before_flush(session, flush_context, instances) -> None:
    if session.info.get(TENANT_OPTION_BYPASS):
        return
    company_ctx = _coerce_int(session.info.get(TENANT_OPTION_COMPANY))
    if company_ctx is None:
        return

    _ensure_models_ready()
    for obj in list(session.new) + list(session.dirty):
        table = getattr(obj, "__table__", None)
        if table is None or "company_id" not in table.c:
            continue
        current_company = _coerce_int(getattr(obj, "company_id", None))
        if current_company is None:
            if obj in session.new:
                setattr(obj, "company_id", company_ctx)
                continue
            if _STRICT_TENANT:
                raise ScopeViolation(
                    f"company_id faltante al guardar {type(obj).__name__}."
                )
        elif current_company != company_ctx:
            raise ScopeViolation(
                f"Escritura de {type(obj).__name__} en otra empresa bloqueada."
            )


def register_tenant_listeners() -> None:
    global _TENANT_LISTENERS_INSTALLED
    if _TENANT_LISTENERS_INSTALLED:
        return
    event.listen(Session, "do_orm_execute", _apply_tenant_criteria)
    event.listen(Session, "before_flush", _before_flush)
    _TENANT_LISTENERS_INSTALLED = True
