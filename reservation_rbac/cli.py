"""Reservation RBAC CLI tool (rbacctl)."""

import typer

app = typer.Typer(name="rbacctl", help="Reservation RBAC CLI")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


def _mysql_params():
    """Split the configured URL into pymysql connect arguments and the database name."""
    from sqlalchemy.engine import make_url
    from reservation_rbac.core.config import settings

    url = make_url(settings.MYSQL_URL)
    params = dict(host=url.host or "localhost", port=url.port or 3306, user=url.username, password=url.password)
    return params, url.database


@db_app.command("create")
def db_create():
    """Create the MySQL database if it doesn't exist."""
    import pymysql

    params, db_name = _mysql_params()
    conn = pymysql.connect(**params)
    try:
        cursor = conn.cursor()
        cursor.execute(f"CREATE DATABASE IF NOT EXISTS `{db_name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()
        typer.echo(f"✅ Database '{db_name}' created (or already exists)")
    finally:
        conn.close()


@db_app.command("tables")
def db_tables():
    """Create all tables."""
    from reservation_rbac.db.session import create_tables

    create_tables()
    typer.echo("✅ Tables created")


@db_app.command("seed")
def db_seed():
    """Seed permissions, roles and the super-admin."""
    from reservation_rbac.db.session import SessionLocal
    from reservation_rbac.db.seeds.seed_roles import seed_roles
    from reservation_rbac.db.seeds.seed_super_admin import seed_super_admin

    db = SessionLocal()
    try:
        seed_roles(db)
        seed_super_admin(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@db_app.command("reset")
def db_reset():
    """Drop and recreate the database (DANGER)."""
    confirm = typer.confirm("⚠️  This will DROP the entire database. Continue?")
    if not confirm:
        raise typer.Abort()
    import pymysql

    params, db_name = _mysql_params()
    conn = pymysql.connect(**params)
    try:
        cursor = conn.cursor()
        cursor.execute(f"DROP DATABASE IF EXISTS `{db_name}`")
        cursor.execute(f"CREATE DATABASE `{db_name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()
        typer.echo(f"✅ Database '{db_name}' reset")
    finally:
        conn.close()


@app.command("sweep")
def sweep():
    """Record every expired role assignment now."""
    from reservation_rbac.db.session import SessionLocal
    from reservation_rbac.services.user_role_service import user_role_service

    db = SessionLocal()
    try:
        swept = user_role_service.sweep_expired(db)
    finally:
        db.close()
    typer.echo(f"Swept {swept} expired assignment(s)")


@app.command("check")
def check(
    user_id: int = typer.Argument(..., help="User ID"),
    permission: str = typer.Argument(..., help="Permission name, e.g. reservas.crear"),
):
    """Tell whether a user holds a permission right now."""
    from reservation_rbac.db.session import SessionLocal
    from reservation_rbac.services.authorization_service import authorization_service

    db = SessionLocal()
    try:
        granted = authorization_service.has_permission(db, user_id, permission)
    finally:
        db.close()
    typer.echo(f"{permission}: {'GRANTED' if granted else 'DENIED'}")
    if not granted:
        raise typer.Exit(code=1)


@app.command("access")
def access(user_id: int = typer.Argument(..., help="User ID")):
    """Print a user's effective roles, level and permissions."""
    from reservation_rbac.db.session import SessionLocal
    from reservation_rbac.services.authorization_service import authorization_service

    db = SessionLocal()
    try:
        result = authorization_service.resolve(db, user_id)
    finally:
        db.close()
    level = result.access_level if result.has_access else "none"
    typer.echo(f"User {user_id}: level={level} roles={sorted(result.role_ids)}")
    for name in sorted(result.permissions):
        typer.echo(f"  {name}")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("reservation_rbac.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
