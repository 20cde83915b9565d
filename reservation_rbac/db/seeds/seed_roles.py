"""Seed the default permission catalog, roles and their bindings."""

from sqlalchemy.orm import Session
from reservation_rbac.models.permission import Permission
from reservation_rbac.models.role import Role
from reservation_rbac.models.role_permission import RolePermission

MODULES = ["roles", "permisos", "usuarios", "auditoria", "reservas", "clientes", "pagos", "servicios"]
ACTIONS = ["crear", "leer", "actualizar", "eliminar"]


def default_permission_names() -> list[str]:
    return [f"{module}.{action}" for module in MODULES for action in ACTIONS]


def _business(actions: list[str]) -> list[str]:
    return [
        f"{module}.{action}"
        for module in ("reservas", "clientes", "pagos", "servicios")
        for action in actions
    ]


ROLES_DATA = [
    {
        "name": "Super Administrador",
        "access_level": 1,
        "description": "Full system access, including the permission catalog",
        "permissions": default_permission_names(),
    },
    {
        "name": "Administrador",
        "access_level": 2,
        "description": "Manage users, roles and all reservation data",
        "permissions": [
            "roles.crear", "roles.leer", "roles.actualizar",
            "permisos.leer", "usuarios.crear", "usuarios.leer", "usuarios.actualizar",
            "auditoria.leer",
        ] + _business(ACTIONS),
    },
    {
        "name": "Empleado",
        "access_level": 3,
        "description": "Create and manage reservations for clients",
        "permissions": _business(["crear", "leer", "actualizar"]),
    },
    {
        "name": "Cliente",
        "access_level": 4,
        "description": "Read-only access to own reservations and services",
        "permissions": ["reservas.leer", "servicios.leer"],
    },
]


def seed_roles(db: Session) -> None:
    """Insert default permissions, roles and bindings if they don't already exist."""
    by_name = {p.name: p for p in db.query(Permission).all()}
    for name in default_permission_names():
        if name not in by_name:
            module, action = name.split(".", 1)
            by_name[name] = Permission(name=name, module=module, action=action)
            db.add(by_name[name])
    db.flush()

    for role_data in ROLES_DATA:
        role = db.query(Role).filter(Role.name == role_data["name"]).first()
        if not role:
            role = Role(
                name=role_data["name"],
                access_level=role_data["access_level"],
                description=role_data["description"],
                is_active=True,
            )
            db.add(role)
            db.flush()
        bound = {
            row.permission_id
            for row in db.query(RolePermission.permission_id).filter(RolePermission.role_id == role.id)
        }
        for name in role_data["permissions"]:
            if by_name[name].id not in bound:
                db.add(RolePermission(role_id=role.id, permission_id=by_name[name].id))

    db.commit()
    print(f"✅ Seeded {len(by_name)} permissions and {len(ROLES_DATA)} roles")
