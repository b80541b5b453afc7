from bloodlink.exceptions import AccountBlocked, AlreadyExists, Forbidden, NotFound, ValidationFailed
from bloodlink.tests.support import CoreTestCase


class RegistrationTest(CoreTestCase):
    def test_defaults_cannot_be_forged(self):
        account = self.lifecycle.register("New.User@Example.com", {
            "name": "New User",
            "bloodGroup": "B+",
            "role": "admin",
            "status": "blocked",
            "email": "someone-else@example.com",
        })

        self.assertEqual(account["email"], "new.user@example.com")
        self.assertEqual(account["role"], "donor")
        self.assertEqual(account["status"], "active")
        self.assertEqual(account["bloodGroup"], "B+")

    def test_one_account_per_identity(self):
        self.lifecycle.register("u1@example.com", {"name": "First"})

        with self.assertRaises(AlreadyExists):
            self.lifecycle.register("U1@example.com", {"name": "Second"})

        self.assertEqual(self.services.accounts.get("u1@example.com")["name"], "First")

    def test_invalid_blood_group(self):
        with self.assertRaises(ValidationFailed):
            self.lifecycle.register("u1@example.com", {"bloodGroup": "C+"})
        self.assertIsNone(self.services.accounts.get("u1@example.com"))


class ProfileTest(CoreTestCase):
    def setUp(self):
        super().setUp()
        self.make_account("u1@example.com", name="Rahim")
        self.make_account("a1@example.com", role="admin")

    def test_owner_updates_allow_listed_fields_only(self):
        account = self.lifecycle.update_profile("u1@example.com", "u1@example.com", {
            "name": "Rahim Uddin",
            "district": "Dhaka",
            "role": "admin",
            "status": "blocked",
            "email": "other@example.com",
        })

        self.assertEqual(account["name"], "Rahim Uddin")
        self.assertEqual(account["district"], "Dhaka")
        self.assertEqual(account["role"], "donor")
        self.assertEqual(account["status"], "active")
        self.assertEqual(account["email"], "u1@example.com")

    def test_admin_cannot_edit_someone_elses_profile(self):
        with self.assertRaises(Forbidden):
            self.lifecycle.update_profile("a1@example.com", "u1@example.com", {"name": "Hacked"})

        self.assertEqual(self.services.accounts.get("u1@example.com")["name"], "Rahim")

    def test_empty_patch(self):
        with self.assertRaises(ValidationFailed):
            self.lifecycle.update_profile("u1@example.com", "u1@example.com", {"role": "admin"})

    def test_unknown_account(self):
        with self.assertRaises(NotFound):
            self.lifecycle.update_profile("u1@example.com", "ghost@example.com", {"name": "X"})

    def test_account_details_are_owner_or_admin(self):
        self.make_account("u2@example.com", phone="01700000000")

        self.assertEqual(self.lifecycle.get_account("u2@example.com", "u2@example.com")["phone"], "01700000000")
        self.assertEqual(self.lifecycle.get_account("a1@example.com", "u2@example.com")["role"], "donor")
        with self.assertRaises(Forbidden):
            self.lifecycle.get_account("u1@example.com", "u2@example.com")
        with self.assertRaises(NotFound):
            self.lifecycle.get_account("a1@example.com", "ghost@example.com")


class AdminChangesTest(CoreTestCase):
    def setUp(self):
        super().setUp()
        self.make_account("u1@example.com")
        self.make_account("u2@example.com")
        self.make_account("a1@example.com", role="admin")

    def test_donor_cannot_change_roles(self):
        with self.assertRaises(Forbidden):
            self.lifecycle.change_role("u1@example.com", "u1@example.com", "admin")

        self.assertEqual(self.services.accounts.get("u1@example.com")["role"], "donor")

    def test_promoted_volunteer_can_transition(self):
        donation = self.make_donation("u1@example.com")

        with self.assertRaises(Forbidden):
            self.lifecycle.transition("u2@example.com", donation["_id"], "inprogress")

        self.lifecycle.change_role("a1@example.com", "u2@example.com", "volunteer")
        updated = self.lifecycle.transition("u2@example.com", donation["_id"], "inprogress")

        self.assertEqual(updated["status"], "inprogress")

    def test_blocking_takes_effect_on_next_request(self):
        self.make_donation("u1@example.com")
        self.lifecycle.change_status("a1@example.com", "u1@example.com", "blocked")

        with self.assertRaises(AccountBlocked):
            self.make_donation("u1@example.com")

        self.lifecycle.change_status("a1@example.com", "u1@example.com", "active")
        self.make_donation("u1@example.com")
        self.assertEqual(self.services.donations.count(), 2)

    def test_values_are_validated(self):
        with self.assertRaises(ValidationFailed):
            self.lifecycle.change_role("a1@example.com", "u1@example.com", "superuser")
        with self.assertRaises(ValidationFailed):
            self.lifecycle.change_status("a1@example.com", "u1@example.com", "deleted")

    def test_unknown_target(self):
        with self.assertRaises(NotFound):
            self.lifecycle.change_role("a1@example.com", "ghost@example.com", "volunteer")

    def test_role_lookup_is_owner_or_admin(self):
        self.assertEqual(
            self.lifecycle.get_role("u1@example.com", "u1@example.com"),
            {"role": "donor", "status": "active"},
        )
        self.assertEqual(self.lifecycle.get_role("a1@example.com", "u1@example.com")["role"], "donor")
        with self.assertRaises(Forbidden):
            self.lifecycle.get_role("u2@example.com", "u1@example.com")


class ListingTest(CoreTestCase):
    def setUp(self):
        super().setUp()
        self.make_account("u1@example.com", name="Rahim", bloodGroup="O+", district="Dhaka")
        self.make_account("u2@example.com", name="Karim", bloodGroup="A+", district="Sylhet")
        self.make_account("v1@example.com", role="volunteer")
        self.make_account("a1@example.com", role="admin")

    def test_account_search_and_pagination(self):
        result = self.lifecycle.list_accounts("a1@example.com", search="rahim", page=1, limit=10)

        self.assertEqual(result["pagination"]["total"], 1)
        self.assertEqual(result["data"][0]["email"], "u1@example.com")

        page = self.lifecycle.list_accounts("a1@example.com", page=2, limit=3)
        self.assertEqual(page["pagination"], {"total": 4, "page": 2, "limit": 3, "totalPages": 2})
        self.assertEqual(len(page["data"]), 1)

    def test_search_term_is_not_a_regex(self):
        result = self.lifecycle.list_accounts("a1@example.com", search=".*")
        self.assertEqual(result["pagination"]["total"], 0)

    def test_donor_search_skips_blocked_and_staff(self):
        self.services.accounts.set_status("u2@example.com", "blocked")

        donors = self.lifecycle.search_donors()
        self.assertEqual([d["email"] for d in donors], ["u1@example.com"])

        self.assertEqual(self.lifecycle.search_donors(blood_group="A+"), [])
        self.assertEqual(len(self.lifecycle.search_donors(blood_group="O+", district="Dhaka")), 1)

    def test_user_donations_are_owner_or_admin(self):
        self.make_donation("u1@example.com", hospitalName="Square Hospital")
        self.make_donation("u1@example.com", hospitalName="Ibn Sina")
        self.make_donation("u2@example.com")

        own = self.lifecycle.list_user_donations("u1@example.com", "u1@example.com")
        self.assertEqual(own["pagination"]["total"], 2)

        searched = self.lifecycle.list_user_donations("a1@example.com", "u1@example.com", search="square")
        self.assertEqual(searched["pagination"]["total"], 1)

        with self.assertRaises(Forbidden):
            self.lifecycle.list_user_donations("u2@example.com", "u1@example.com")

    def test_all_donations_status_filter(self):
        first = self.make_donation("u1@example.com")
        self.make_donation("u2@example.com")
        self.lifecycle.transition("v1@example.com", first["_id"], "inprogress")

        pending = self.lifecycle.list_all_donations("v1@example.com", status="Pending")
        everything = self.lifecycle.list_all_donations("v1@example.com", status="All Status")

        self.assertEqual(pending["pagination"]["total"], 1)
        self.assertEqual(everything["pagination"]["total"], 2)
        with self.assertRaises(Forbidden):
            self.lifecycle.list_all_donations("u1@example.com")
