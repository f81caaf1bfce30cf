"""
Quick User Creation
Run from project root: python create_initial_users.py

Creates an owner account and, optionally, a mechanic who can be assigned to
maintenances.  Admin rights are granted separately with
``flask users grant-admin <email>``.
"""
import getpass

from app import create_app
from extensions import db
from models.enums import UserRole
from models.users import User
from blueprints.auth.forms import validate_password_strength


def _prompt_password():
    while True:
        password = getpass.getpass("Password: ").strip()
        is_valid, error_msg = validate_password_strength(password)
        if not is_valid:
            print(f"❌ {error_msg}\n")
            continue
        if password == getpass.getpass("Confirm Password: ").strip():
            return password
        print("❌ Passwords don't match. Try again.\n")


def _prompt_user(role):
    print(f"\n{role.value.title()}:")
    email = input("Email: ").strip().lower()
    if User.query.filter_by(email=email).first():
        print(f"⚠️  {email} already exists, skipping")
        return None
    name = input("Full Name: ").strip()
    user = User(email=email, name=name, role=role.value, is_active=True)
    user.set_password(_prompt_password())
    db.session.add(user)
    return user


def create_initial_users():
    app = create_app()

    with app.app_context():
        existing = User.query.count()
        if existing > 0:
            print(f"⚠️  {existing} user(s) already exist!")
            response = input("\nCreate additional users? (y/n): ")
            if response.lower() != 'y':
                return

        print("\n=== Create User Accounts ===")
        created = [_prompt_user(UserRole.OWNER)]
        if input("\nAlso create a mechanic account? (y/n): ").lower() == 'y':
            created.append(_prompt_user(UserRole.MECHANIC))
        created = [u for u in created if u is not None]

        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            print(f"\n❌ Error: {e}")
            return

        print(f"\n✅ Successfully created {len(created)} user(s)!")
        for user in created:
            print(f"   - {user.name} ({user.email}, {user.role})")


if __name__ == '__main__':
    create_initial_users()
