from django.test import TestCase
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from audit.models import AuditLog

from .models import User


class UserModelTests(TestCase):
    def test_default_role_is_receptionist(self):
        user = User.objects.create_user(username="testuser", password="pass12345")
        self.assertEqual(user.role, User.Roles.RECEPTIONIST)

    def test_soft_delete_deactivates_account(self):
        user = User.objects.create_user(username="gone", password="pass12345")

        self.assertTrue(user.soft_delete())
        self.assertFalse(user.soft_delete())
        user.refresh_from_db()
        self.assertFalse(user.is_active)
        self.assertIsNotNone(user.deleted_at)

    def test_display_name_falls_back_to_username(self):
        user = User.objects.create_user(username="nobody", password="pass12345")
        self.assertEqual(user.display_name, "nobody")
        user.first_name = "Rosa"
        user.last_name = "Paz"
        self.assertEqual(user.display_name, "Rosa Paz")


class AuthApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            username="front",
            password="S3guro-clave-2025",
            role=User.Roles.RECEPTIONIST,
        )

    def test_login_returns_token_and_user(self):
        response = self.client.post(
            "/api/auth/login/",
            {"username": "front", "password": "S3guro-clave-2025"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["token"], Token.objects.get(user=self.user).key)
        self.assertEqual(response.data["user"]["role"], User.Roles.RECEPTIONIST)
        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.last_login)

    def test_login_rejects_bad_password(self):
        response = self.client.post(
            "/api/auth/login/",
            {"username": "front", "password": "wrong"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "Usuario o contraseña incorrectos")

    def test_deleted_user_cannot_log_in(self):
        self.user.soft_delete()
        response = self.client.post(
            "/api/auth/login/",
            {"username": "front", "password": "S3guro-clave-2025"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me_and_logout(self):
        token = Token.objects.create(user=self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")

        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["username"], "front")

        response = self.client.post("/api/auth/logout/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Token.objects.filter(user=self.user).exists())


class UserApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.superadmin = User.objects.create_user(
            username="root",
            password="pass12345",
            role=User.Roles.SUPERADMIN,
        )
        self.admin = User.objects.create_user(
            username="admin",
            password="pass12345",
            role=User.Roles.ADMIN,
        )
        self.receptionist = User.objects.create_user(
            username="front",
            password="pass12345",
            role=User.Roles.RECEPTIONIST,
        )
        self.new_user = {
            "username": "nuevo",
            "email": "nuevo@example.com",
            "password": "Otra-clave-segura-9",
        }

    def test_admin_creates_receptionist_only(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post("/api/users/", self.new_user, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["role"], User.Roles.RECEPTIONIST)
        self.assertNotIn("password", response.data)
        self.assertTrue(AuditLog.objects.filter(action="user.created").exists())

        response = self.client.post(
            "/api/users/",
            {**self.new_user, "username": "otro", "email": "otro@example.com", "role": "admin"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_superadmin_creates_admin(self):
        self.client.force_authenticate(user=self.superadmin)
        response = self.client.post("/api/users/", {**self.new_user, "role": "admin"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(username="nuevo").role, User.Roles.ADMIN)

    def test_superadmin_role_cannot_be_assigned(self):
        self.client.force_authenticate(user=self.superadmin)
        response = self.client.post("/api/users/", {**self.new_user, "role": "superadmin"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_password_is_required_on_create(self):
        self.client.force_authenticate(user=self.superadmin)
        payload = {key: value for key, value in self.new_user.items() if key != "password"}
        response = self.client.post("/api/users/", payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("password", response.data["errors"])

    def test_duplicate_username_is_rejected(self):
        self.client.force_authenticate(user=self.superadmin)
        response = self.client.post("/api/users/", {**self.new_user, "username": "FRONT"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["errors"]["username"][0], "El nombre de usuario ya existe")

    def test_receptionist_cannot_list_users(self):
        self.client.force_authenticate(user=self.receptionist)
        response = self.client.get("/api/users/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_only_superadmin_updates_and_deletes(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.patch(f"/api/users/{self.receptionist.id}/", {"first_name": "Eva"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.superadmin)
        response = self.client.patch(f"/api/users/{self.receptionist.id}/", {"first_name": "Eva"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["display_name"], "Eva")

        response = self.client.delete(f"/api/users/{self.receptionist.id}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.receptionist.refresh_from_db()
        self.assertIsNotNone(self.receptionist.deleted_at)

        response = self.client.get("/api/users/", {"role": "receptionist"})
        self.assertEqual(response.data, [])

    def test_put_without_role_keeps_current_role(self):
        self.client.force_authenticate(user=self.superadmin)
        response = self.client.put(
            f"/api/users/{self.admin.id}/",
            {
                "username": "admin",
                "email": "admin@example.com",
                "first_name": "Laura",
                "last_name": "Ortiz",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.role, User.Roles.ADMIN)
        self.assertEqual(self.admin.first_name, "Laura")

    def test_superadmin_can_be_updated_but_not_demoted(self):
        self.client.force_authenticate(user=self.superadmin)
        payload = {"username": "root", "email": "root@example.com", "first_name": "Raúl"}

        response = self.client.put(f"/api/users/{self.superadmin.id}/", payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.put(
            f"/api/users/{self.superadmin.id}/",
            {**payload, "role": "admin"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("role", response.data["errors"])
        self.superadmin.refresh_from_db()
        self.assertEqual(self.superadmin.role, User.Roles.SUPERADMIN)

    def test_deleted_username_is_not_reused(self):
        self.receptionist.soft_delete()
        self.client.force_authenticate(user=self.superadmin)

        for username in ["front", "Front"]:
            response = self.client.post("/api/users/", {**self.new_user, "username": username}, format="json")
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertIn("username", response.data["errors"])

    def test_superadmin_cannot_delete_self(self):
        self.client.force_authenticate(user=self.superadmin)
        response = self.client.delete(f"/api/users/{self.superadmin.id}/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
