import json
import uuid
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import Client, SimpleTestCase, TestCase, override_settings

from vault.exceptions import DuplicateEntry, InvalidEntry, VaultStoreError
from vault.models import VaultEntry
from vault.pagination import PageInfo, paginate, parse_positive_int
from vault.results import VaultErrorKind
from vault.serializers import parse_entry_updates, serialize_entry
from vault.services import CipherPair, VaultService
from vault.store import VaultStore


User = get_user_model()


def _entry_fields(name='GitHub', url='https://github.com', **overrides):
    fields = {
        'website_name': name,
        'url': url,
        'username_cipher': 'enc-user',
        'username_iv': 'iv-user',
        'password_cipher': 'enc-pass',
        'password_iv': 'iv-pass',
        'password_strength': 3,
    }
    fields.update(overrides)
    return fields


class ParsePositiveIntTests(SimpleTestCase):
    def test_returns_default_for_missing_or_non_numeric_values(self):
        self.assertEqual(parse_positive_int(None, 10), 10)
        self.assertEqual(parse_positive_int('', 10), 10)
        self.assertEqual(parse_positive_int('abc', 1), 1)
        self.assertEqual(parse_positive_int('2.5', 4), 4)

    def test_parses_numeric_strings(self):
        self.assertEqual(parse_positive_int('3', 1), 3)
        self.assertEqual(parse_positive_int(' 25 ', 10), 25)
        self.assertEqual(parse_positive_int(7, 1), 7)

    def test_clamps_to_at_least_one(self):
        self.assertEqual(parse_positive_int('0', 10), 1)
        self.assertEqual(parse_positive_int('-4', 10), 1)

    def test_clamps_to_maximum_when_given(self):
        self.assertEqual(parse_positive_int('500', 10, 100), 100)
        self.assertEqual(parse_positive_int('100000000000000000000', 10, 50), 50)
        self.assertEqual(parse_positive_int('40', 10, 50), 40)

    def test_page_info_uses_wire_keys(self):
        info = PageInfo(page=2, limit=10, total_count=25, total_pages=3)
        self.assertEqual(info.as_dict(), {'page': 2, 'limit': 10, 'totalCount': 25, 'totalPages': 3})


class PaginateTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username='pager', password='password123')
        self.other = User.objects.create_user(username='other', password='password123')
        for index in range(12):
            VaultEntry.objects.create(owner=self.owner, **_entry_fields(f'Site {index}', f'https://site{index}.test'))
        VaultEntry.objects.create(owner=self.owner, **_entry_fields('Mail Server', 'https://mail.test'))
        VaultEntry.objects.create(owner=self.other, **_entry_fields('Site other', 'https://other.test'))

    def test_paginates_model_class_with_base_filter(self):
        results, info = paginate(VaultEntry, {'owner': self.owner}, page=2, limit=5)
        self.assertEqual(len(results), 5)
        self.assertEqual(info, PageInfo(page=2, limit=5, total_count=13, total_pages=3))

    def test_search_is_case_insensitive_substring_across_fields(self):
        queryset = VaultEntry.objects.owned_by(self.owner)
        results, info = paginate(queryset, None, 'MAIL', ('website_name', 'url'))
        self.assertEqual([entry.website_name for entry in results], ['Mail Server'])
        self.assertEqual(info.total_count, 1)

        results, info = paginate(queryset, None, 'site3.test', ('website_name', 'url'))
        self.assertEqual([entry.website_name for entry in results], ['Site 3'])

    def test_empty_search_term_returns_everything(self):
        _, info = paginate(VaultEntry.objects.owned_by(self.owner), None, '', ('website_name',))
        self.assertEqual(info.total_count, 13)

    def test_page_past_the_end_is_empty(self):
        results, info = paginate(VaultEntry.objects.owned_by(self.owner), page='9', limit='5')
        self.assertEqual(results, [])
        self.assertEqual(info.total_pages, 3)
        self.assertEqual(info.page, 9)

    def test_page_beyond_database_integer_range_is_empty(self):
        results, info = paginate(
            VaultEntry.objects.owned_by(self.owner), page='100000000000000000000', limit='5'
        )
        self.assertEqual(results, [])
        self.assertEqual(info.total_count, 13)
        self.assertEqual(info.page, 100000000000000000000)

    def test_limit_is_capped(self):
        results, info = paginate(VaultEntry.objects.owned_by(self.owner), limit='1000', max_limit=5)
        self.assertEqual(len(results), 5)
        self.assertEqual(info.limit, 5)
        self.assertEqual(info.total_pages, 3)

    def test_no_matches_reports_zero_pages(self):
        results, info = paginate(VaultEntry.objects.owned_by(self.owner), None, 'nothing', ('website_name',))
        self.assertEqual(results, [])
        self.assertEqual(info.total_pages, 0)

    def test_rejects_unsupported_sources(self):
        with self.assertRaises(TypeError):
            paginate([1, 2, 3])


class VaultStoreTests(TestCase):
    def setUp(self):
        self.store = VaultStore()
        self.alice = User.objects.create_user(username='alice', password='password123')
        self.bob = User.objects.create_user(username='bob', password='password123')

    def test_insert_assigns_identity_and_timestamps(self):
        entry = self.store.insert(self.alice.pk, **_entry_fields())
        self.assertIsInstance(entry.id, uuid.UUID)
        self.assertIsNotNone(entry.created_at)
        self.assertIsNotNone(entry.updated_at)
        self.assertEqual(entry.owner_id, self.alice.pk)

    def test_insert_duplicate_raises_duplicate_entry(self):
        self.store.insert(self.alice.pk, **_entry_fields())
        with self.assertRaises(DuplicateEntry):
            self.store.insert(self.alice.pk, **_entry_fields(username_cipher='other'))
        self.assertEqual(VaultEntry.objects.count(), 1)

    def test_same_site_for_different_owners_is_allowed(self):
        self.store.insert(self.alice.pk, **_entry_fields())
        self.store.insert(self.bob.pk, **_entry_fields())
        self.assertEqual(VaultEntry.objects.count(), 2)

    def test_insert_rejects_non_boolean_compromise_flag(self):
        with self.assertRaises(InvalidEntry):
            self.store.insert(self.alice.pk, **_entry_fields(is_compromised='maybe'))
        self.assertEqual(VaultEntry.objects.count(), 0)

    def test_update_owned_rejects_non_boolean_compromise_flag(self):
        entry = self.store.insert(self.alice.pk, **_entry_fields())
        with self.assertRaises(InvalidEntry):
            self.store.update_owned(self.alice.pk, entry.id, {'is_compromised': 'maybe'})
        entry.refresh_from_db()
        self.assertIsNone(entry.is_compromised)

    def test_find_owned_treats_malformed_id_as_missing(self):
        self.store.insert(self.alice.pk, **_entry_fields())
        self.assertIsNone(self.store.find_owned(self.alice.pk, id='not-a-uuid'))

    def test_update_owned_ignores_non_editable_fields(self):
        entry = self.store.insert(self.alice.pk, **_entry_fields())
        original_created = entry.created_at

        updated = self.store.update_owned(self.alice.pk, entry.id, {
            'owner_id': self.bob.pk,
            'id': uuid.uuid4(),
            'created_at': None,
            'website_name': 'GitHub Enterprise',
        })

        self.assertEqual(updated.website_name, 'GitHub Enterprise')
        entry.refresh_from_db()
        self.assertEqual(entry.owner_id, self.alice.pk)
        self.assertEqual(entry.created_at, original_created)
        self.assertGreaterEqual(entry.updated_at, original_created)

    def test_update_owned_returns_none_for_other_owner(self):
        entry = self.store.insert(self.alice.pk, **_entry_fields())
        self.assertIsNone(self.store.update_owned(self.bob.pk, entry.id, {'website_name': 'Hijacked'}))
        entry.refresh_from_db()
        self.assertEqual(entry.website_name, 'GitHub')

    def test_update_owned_raises_duplicate_entry_on_collision(self):
        self.store.insert(self.alice.pk, **_entry_fields('GitHub', 'https://github.com'))
        second = self.store.insert(self.alice.pk, **_entry_fields('GitLab', 'https://gitlab.com'))
        with self.assertRaises(DuplicateEntry):
            self.store.update_owned(self.alice.pk, second.id, {'website_name': 'GitHub', 'url': 'https://github.com'})

    def test_delete_many_owned_skips_foreign_and_malformed_ids(self):
        mine = self.store.insert(self.alice.pk, **_entry_fields('A', 'https://a.test'))
        theirs = self.store.insert(self.bob.pk, **_entry_fields('B', 'https://b.test'))
        deleted = self.store.delete_many_owned(self.alice.pk, [str(mine.id), str(theirs.id), 'garbage'])
        self.assertEqual(deleted, 1)
        self.assertTrue(VaultEntry.objects.filter(id=theirs.id).exists())

    def test_database_errors_are_wrapped(self):
        with patch.object(self.store, 'owned', side_effect=DatabaseError('database is locked')):
            with self.assertRaises(VaultStoreError):
                self.store.find_owned(self.alice.pk, website_name='x')


class VaultServiceTests(TestCase):
    def setUp(self):
        self.service = VaultService()
        self.alice = User.objects.create_user(username='alice', password='password123')
        self.bob = User.objects.create_user(username='bob', password='password123')

    def _add(self, owner, name='GitHub', url='https://github.com', strength=3):
        return self.service.add(
            owner.pk,
            website_name=name,
            url=url,
            username=CipherPair('enc-user', 'iv-user'),
            password=CipherPair('enc-pass', 'iv-pass'),
            password_strength=strength,
        )

    def test_add_then_get_returns_cipher_pairs_unchanged(self):
        added = self._add(self.alice)
        self.assertTrue(added.ok)
        self.assertEqual(added.message, 'Password information added successfully.')

        result = self.service.get_one(self.alice.pk, added.data.id)

        self.assertTrue(result.ok)
        entry = result.data
        self.assertEqual((entry.username_cipher, entry.username_iv), ('enc-user', 'iv-user'))
        self.assertEqual((entry.password_cipher, entry.password_iv), ('enc-pass', 'iv-pass'))
        self.assertEqual(entry.password_strength, 3)

    def test_add_duplicate_returns_conflict_and_leaves_store_unchanged(self):
        self._add(self.alice)
        before = VaultEntry.objects.count()

        result = self._add(self.alice, strength=1)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, VaultErrorKind.CONFLICT)
        self.assertEqual(result.message, 'Password already exists in the vault.')
        self.assertEqual(VaultEntry.objects.count(), before)

    def test_add_race_past_existence_check_yields_single_row_and_conflict(self):
        first = self._add(self.alice)
        # Second writer passed its existence check before the first committed
        with patch.object(self.service.store, 'find_owned', return_value=None):
            second = self._add(self.alice)

        self.assertTrue(first.ok)
        self.assertEqual(second.error, VaultErrorKind.CONFLICT)
        self.assertEqual(VaultEntry.objects.owned_by(self.alice.pk).count(), 1)

    def test_add_store_failure_maps_to_internal_failure(self):
        with patch.object(self.service.store, 'insert', side_effect=VaultStoreError('disk full')), \
                patch('vault.services.logger') as mock_logger:
            result = self._add(self.alice)

        self.assertEqual(result.error, VaultErrorKind.INTERNAL_FAILURE)
        self.assertEqual(result.message, 'Something went wrong!')
        mock_logger.critical.assert_called_once()

    def test_add_rejects_non_boolean_compromise_flag(self):
        result = self.service.add(
            self.alice.pk,
            website_name='GitHub',
            url='https://github.com',
            username=CipherPair('enc-user', 'iv-user'),
            password=CipherPair('enc-pass', 'iv-pass'),
            is_compromised='maybe',
        )

        self.assertEqual(result.error, VaultErrorKind.INVALID_INPUT)
        self.assertIn('is_compromised', result.message)
        self.assertEqual(VaultEntry.objects.count(), 0)

    def test_add_rejects_blank_required_values(self):
        result = self.service.add(
            self.alice.pk,
            website_name='  ',
            url='https://github.com',
            username=CipherPair('enc-user', None),
            password=CipherPair('enc-pass', 'iv-pass'),
        )

        self.assertEqual(result.error, VaultErrorKind.INVALID_INPUT)
        self.assertIn('website_name', result.message)
        self.assertIn('username_iv', result.message)
        self.assertEqual(VaultEntry.objects.count(), 0)

    def test_add_store_rejection_maps_to_invalid_input(self):
        with patch.object(self.service.store, 'insert', side_effect=InvalidEntry('bad value')), \
                patch('vault.services.logger') as mock_logger:
            result = self._add(self.alice)

        self.assertEqual(result.error, VaultErrorKind.INVALID_INPUT)
        mock_logger.critical.assert_not_called()

    def test_add_logs_user_activity(self):
        with self.assertLogs('vault', level='INFO') as captured:
            self._add(self.alice)
        self.assertTrue(any('vault_entry_created' in line for line in captured.output))
        self.assertFalse(any('enc-pass' in line for line in captured.output))

    def test_list_first_page_of_twenty_five(self):
        for index in range(25):
            self._add(self.alice, name=f'Site {index}', url=f'https://site{index}.test')

        result = self.service.list(self.alice.pk, page='1', limit='10')

        self.assertTrue(result.ok)
        self.assertEqual(len(result.data), 10)
        self.assertEqual(result.page_info.total_pages, 3)
        self.assertEqual(result.page_info.total_count, 25)

        last_page = self.service.list(self.alice.pk, page='3', limit='10')
        self.assertEqual(len(last_page.data), 5)

    def test_list_defaults_page_and_limit(self):
        for index in range(12):
            self._add(self.alice, name=f'Site {index}', url=f'https://site{index}.test')

        result = self.service.list(self.alice.pk, page='abc', limit=None)

        self.assertEqual(result.page_info.page, 1)
        self.assertEqual(result.page_info.limit, 10)
        self.assertEqual(len(result.data), 10)

    @override_settings(VAULT_DEFAULT_PAGE_SIZE=5)
    def test_list_default_limit_is_configurable(self):
        for index in range(6):
            self._add(self.alice, name=f'Site {index}', url=f'https://site{index}.test')

        result = self.service.list(self.alice.pk)

        self.assertEqual(result.page_info.limit, 5)
        self.assertEqual(result.page_info.total_pages, 2)

    def test_list_page_beyond_database_integer_range_is_not_found(self):
        self._add(self.alice)

        result = self.service.list(self.alice.pk, page='100000000000000000000')

        self.assertEqual(result.error, VaultErrorKind.NOT_FOUND)
        self.assertEqual(result.message, 'No passwords found')

    @override_settings(VAULT_MAX_PAGE_SIZE=5)
    def test_list_limit_is_capped_by_setting(self):
        for index in range(6):
            self._add(self.alice, name=f'Site {index}', url=f'https://site{index}.test')

        result = self.service.list(self.alice.pk, limit='100000000000000000000')

        self.assertEqual(result.page_info.limit, 5)
        self.assertEqual(len(result.data), 5)
        self.assertEqual(result.page_info.total_pages, 2)

    def test_list_search_matches_website_name_only(self):
        self._add(self.alice, name='GitHub', url='https://github.com')
        self._add(self.alice, name='Bank', url='https://github-bank.test')

        result = self.service.list(self.alice.pk, search_term='git')

        self.assertEqual([entry.website_name for entry in result.data], ['GitHub'])

    def test_list_search_without_match_is_not_found(self):
        self._add(self.alice)
        result = self.service.list(self.alice.pk, search_term='nomatch')
        self.assertEqual(result.error, VaultErrorKind.NOT_FOUND)
        self.assertEqual(result.message, 'No passwords found')

    def test_list_empty_vault_is_not_found(self):
        self.assertEqual(self.service.list(self.alice.pk).error, VaultErrorKind.NOT_FOUND)

    def test_list_store_failure_maps_to_internal_failure(self):
        with patch.object(self.service.store, 'find_many_owned', side_effect=VaultStoreError('boom')), \
                patch('vault.services.logger'):
            result = self.service.list(self.alice.pk)
        self.assertEqual(result.error, VaultErrorKind.INTERNAL_FAILURE)

    def test_operations_never_cross_owners(self):
        bobs = self._add(self.bob).data
        self._add(self.alice, name='Alice Site', url='https://alice.test')

        listed = self.service.list(self.alice.pk)
        self.assertNotIn(bobs.id, [entry.id for entry in listed.data])

        self.assertEqual(self.service.get_one(self.alice.pk, bobs.id).error, VaultErrorKind.NOT_FOUND)
        self.assertEqual(
            self.service.edit(self.alice.pk, bobs.id, {'website_name': 'Stolen'}).error,
            VaultErrorKind.NOT_FOUND,
        )
        self.assertEqual(self.service.delete_one(self.alice.pk, bobs.id).error, VaultErrorKind.NOT_FOUND)
        self.assertEqual(self.service.delete_many(self.alice.pk, [bobs.id]).error, VaultErrorKind.NOT_FOUND)

        bobs.refresh_from_db()
        self.assertEqual(bobs.website_name, 'GitHub')
        self.assertEqual(bobs.owner_id, self.bob.pk)

    def test_not_owned_and_missing_are_indistinguishable(self):
        bobs = self._add(self.bob).data
        foreign = self.service.get_one(self.alice.pk, bobs.id)
        missing = self.service.get_one(self.alice.pk, uuid.uuid4())
        self.assertEqual((foreign.error, foreign.message), (missing.error, missing.message))

    def test_get_one_logs_security_event_on_miss(self):
        with patch('vault.services.logger') as mock_logger:
            self.service.get_one(self.alice.pk, uuid.uuid4())
        mock_logger.security_event.assert_called_once()

    def test_edit_partial_update(self):
        entry = self._add(self.alice).data

        result = self.service.edit(self.alice.pk, entry.id, {
            'password_cipher': 'new-enc-pass',
            'password_iv': 'new-iv-pass',
            'password_strength': 4,
        })

        self.assertTrue(result.ok)
        self.assertEqual(result.message, 'Password updated successfully')
        entry.refresh_from_db()
        self.assertEqual(entry.password_cipher, 'new-enc-pass')
        self.assertEqual(entry.password_iv, 'new-iv-pass')
        self.assertEqual(entry.password_strength, 4)
        self.assertEqual(entry.username_cipher, 'enc-user')

    def test_edit_unknown_id_is_not_found_without_mutation(self):
        entry = self._add(self.alice).data
        snapshot = list(VaultEntry.objects.values())

        result = self.service.edit(self.alice.pk, uuid.uuid4(), {'website_name': 'Changed'})

        self.assertEqual(result.error, VaultErrorKind.NOT_FOUND)
        self.assertEqual(result.message, 'Password not found or not owned by the user')
        self.assertEqual(list(VaultEntry.objects.values()), snapshot)
        entry.refresh_from_db()
        self.assertEqual(entry.website_name, 'GitHub')

    def test_edit_into_existing_site_is_conflict(self):
        self._add(self.alice, name='GitHub', url='https://github.com')
        other = self._add(self.alice, name='GitLab', url='https://gitlab.com').data

        result = self.service.edit(self.alice.pk, other.id, {'website_name': 'GitHub', 'url': 'https://github.com'})

        self.assertEqual(result.error, VaultErrorKind.CONFLICT)
        other.refresh_from_db()
        self.assertEqual(other.website_name, 'GitLab')

    def test_edit_rejects_null_or_blank_required_fields(self):
        entry = self._add(self.alice).data

        for fields in ({'website_name': None}, {'url': ''}, {'password_cipher': None, 'password_iv': 'iv'}):
            result = self.service.edit(self.alice.pk, entry.id, fields)
            self.assertEqual(result.error, VaultErrorKind.INVALID_INPUT)

        entry.refresh_from_db()
        self.assertEqual(entry.website_name, 'GitHub')
        self.assertEqual(entry.url, 'https://github.com')
        self.assertEqual(entry.password_cipher, 'enc-pass')

    def test_edit_rejects_non_boolean_compromise_flag(self):
        entry = self._add(self.alice).data

        result = self.service.edit(self.alice.pk, entry.id, {'is_compromised': 'maybe'})

        self.assertEqual(result.error, VaultErrorKind.INVALID_INPUT)
        self.assertEqual(result.message, 'Invalid values for: is_compromised.')
        self.assertTrue(self.service.edit(self.alice.pk, entry.id, {'is_compromised': True}).ok)

    def test_edit_store_rejection_maps_to_invalid_input(self):
        entry = self._add(self.alice).data
        with patch.object(self.service.store, 'update_owned', side_effect=InvalidEntry('bad value')), \
                patch('vault.services.logger'):
            result = self.service.edit(self.alice.pk, entry.id, {'password_strength': 2})
        self.assertEqual(result.error, VaultErrorKind.INVALID_INPUT)

    def test_delete_one_requires_id(self):
        self.assertEqual(self.service.delete_one(self.alice.pk, '').error, VaultErrorKind.INVALID_INPUT)
        self.assertEqual(self.service.delete_one(self.alice.pk, None).error, VaultErrorKind.INVALID_INPUT)

    def test_delete_one_removes_entry(self):
        entry = self._add(self.alice).data

        result = self.service.delete_one(self.alice.pk, str(entry.id))

        self.assertTrue(result.ok)
        self.assertEqual(result.count, 1)
        self.assertFalse(VaultEntry.objects.filter(id=entry.id).exists())
        self.assertEqual(self.service.delete_one(self.alice.pk, str(entry.id)).error, VaultErrorKind.NOT_FOUND)

    def test_delete_many_requires_non_empty_collection(self):
        for value in (None, [], 'abc', {'id': 1}):
            result = self.service.delete_many(self.alice.pk, value)
            self.assertEqual(result.error, VaultErrorKind.INVALID_INPUT)
            self.assertEqual(result.message, 'An array of password IDs is required.')

    def test_delete_many_counts_only_owned_entries(self):
        mine = [
            self._add(self.alice, name=f'Mine {index}', url=f'https://mine{index}.test').data
            for index in range(3)
        ]
        theirs = self._add(self.bob).data

        result = self.service.delete_many(self.alice.pk, [str(mine[0].id), str(mine[1].id), str(theirs.id)])

        self.assertTrue(result.ok)
        self.assertEqual(result.count, 2)
        self.assertEqual(result.message, '2 passwords have been successfully deleted.')
        self.assertTrue(VaultEntry.objects.filter(id=mine[2].id).exists())
        self.assertTrue(VaultEntry.objects.filter(id=theirs.id).exists())

    def test_ids_are_not_reused_after_deletion(self):
        first = self._add(self.alice).data
        self.service.delete_one(self.alice.pk, first.id)
        second = self._add(self.alice).data
        self.assertNotEqual(first.id, second.id)


class SerializerTests(SimpleTestCase):
    def test_parse_entry_updates_accepts_nested_and_flat_secrets(self):
        updates = parse_entry_updates({
            'websiteName': 'Mail',
            'websiteUrl': 'https://mail.test',
            'username': {'encUsername': 'enc-u', 'iv': 'iv-u'},
            'password': 'enc-p',
            'passwordIv': 'iv-p',
            'passwordStrength': 2,
            'user': 99,
            '_id': 'x',
        })
        self.assertEqual(updates, {
            'website_name': 'Mail',
            'url': 'https://mail.test',
            'username_cipher': 'enc-u',
            'username_iv': 'iv-u',
            'password_cipher': 'enc-p',
            'password_iv': 'iv-p',
            'password_strength': 2,
        })

    def test_serialize_entry_passes_cipher_pairs_through(self):
        entry = VaultEntry(
            id=uuid.UUID('12345678-1234-5678-1234-567812345678'),
            owner_id=1,
            **_entry_fields(),
        )
        data = serialize_entry(entry)
        self.assertEqual(data['id'], '12345678-1234-5678-1234-567812345678')
        self.assertEqual(data['username'], {'encUsername': 'enc-user', 'iv': 'iv-user'})
        self.assertEqual(data['password'], {'encPassword': 'enc-pass', 'iv': 'iv-pass'})
        self.assertEqual(data['passwordStrength'], 3)
        self.assertNotIn('owner', data)


class VaultViewsTests(TestCase):
    def setUp(self):
        self.alice = User.objects.create_user(username='alice', password='password123')
        self.bob = User.objects.create_user(username='bob', password='password123')
        self.client.force_login(self.alice)

    def _create_payload(self, name='GitHub', url='https://github.com'):
        return {
            'websiteName': name,
            'websiteUrl': url,
            'username': 'enc-user',
            'password': 'enc-pass',
            'usernameIv': 'iv-user',
            'passwordIv': 'iv-pass',
            'passwordStrength': 3,
        }

    def _post_json(self, path, payload):
        return self.client.post(path, data=json.dumps(payload), content_type='application/json')

    def test_anonymous_requests_are_rejected(self):
        self.client.logout()
        with patch('vault.views.security_logger') as mock_security_logger:
            response = self.client.get('/vault/passwords/')
        self.assertEqual(response.status_code, 401)
        mock_security_logger.security_event.assert_called_once()

    def test_anonymous_access_is_a_security_event(self):
        self.client.logout()
        with self.assertLogs('django.security', level='WARNING') as captured:
            self.client.get('/vault/passwords/')
        self.assertTrue(any('Unauthenticated vault access attempt' in line for line in captured.output))

    def test_add_and_list(self):
        response = self._post_json('/vault/passwords/', self._create_payload())
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json(), {'success': True, 'message': 'Password information added successfully.'})

        response = self.client.get('/vault/passwords/', {'page': '1', 'limit': '10'})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['totalCount'], 1)
        self.assertEqual(body['totalPages'], 1)
        self.assertEqual(body['data'][0]['username'], {'encUsername': 'enc-user', 'iv': 'iv-user'})
        self.assertEqual(response['Cache-Control'], 'no-store, private')
        self.assertEqual(response['Pragma'], 'no-cache')

    def test_add_duplicate_returns_conflict(self):
        self._post_json('/vault/passwords/', self._create_payload())
        response = self._post_json('/vault/passwords/', self._create_payload())
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['message'], 'Password already exists in the vault.')

    def test_add_requires_fields_and_json(self):
        payload = self._create_payload()
        del payload['passwordIv']
        response = self._post_json('/vault/passwords/', payload)
        self.assertEqual(response.status_code, 400)
        self.assertIn('passwordIv', response.json()['message'])

        response = self.client.post('/vault/passwords/', data='not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_add_with_non_boolean_compromise_flag_is_400(self):
        payload = self._create_payload()
        payload['isCompromised'] = 'maybe'

        response = self._post_json('/vault/passwords/', payload)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response['Content-Type'], 'application/json')
        self.assertFalse(response.json()['success'])
        self.assertFalse(VaultEntry.objects.exists())

    def test_edit_with_invalid_values_is_400(self):
        self._post_json('/vault/passwords/', self._create_payload())
        entry = VaultEntry.objects.get(owner=self.alice)
        detail_path = f'/vault/passwords/{entry.id}/'

        for payload in ({'isCompromised': 'maybe'}, {'websiteName': None}):
            response = self.client.patch(detail_path, data=json.dumps(payload), content_type='application/json')
            self.assertEqual(response.status_code, 400)
            self.assertFalse(response.json()['success'])

        entry.refresh_from_db()
        self.assertEqual(entry.website_name, 'GitHub')
        self.assertIsNone(entry.is_compromised)

    def test_list_with_oversized_page_is_404(self):
        self._post_json('/vault/passwords/', self._create_payload())
        response = self.client.get('/vault/passwords/', {'page': '100000000000000000000'})
        self.assertEqual(response.status_code, 404)

    def test_list_issues_csrf_cookie(self):
        response = self.client.get('/vault/passwords/')
        self.assertIn('csrftoken', response.cookies)

    def test_csrf_token_from_list_authorizes_writes(self):
        client = Client(enforce_csrf_checks=True)
        client.force_login(self.alice)
        client.get('/vault/passwords/')
        token = client.cookies['csrftoken'].value
        body = json.dumps(self._create_payload())

        rejected = client.post('/vault/passwords/', data=body, content_type='application/json')
        self.assertEqual(rejected.status_code, 403)

        accepted = client.post('/vault/passwords/', data=body, content_type='application/json',
                               HTTP_X_CSRFTOKEN=token)
        self.assertEqual(accepted.status_code, 201)

    def test_list_without_entries_is_404(self):
        response = self.client.get('/vault/passwords/', {'search': 'nothing'})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {'success': False, 'message': 'No passwords found'})

    def test_get_edit_and_delete_single_entry(self):
        self._post_json('/vault/passwords/', self._create_payload())
        entry = VaultEntry.objects.get(owner=self.alice)
        detail_path = f'/vault/passwords/{entry.id}/'

        response = self.client.get(detail_path)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['websiteName'], 'GitHub')

        response = self.client.patch(
            detail_path,
            data=json.dumps({'password': {'encPassword': 'new-enc', 'iv': 'new-iv'}}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['password'], {'encPassword': 'new-enc', 'iv': 'new-iv'})

        response = self.client.delete(detail_path)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Password has been successfully deleted.')
        self.assertEqual(self.client.get(detail_path).status_code, 404)

    def test_detail_of_other_owner_and_malformed_ids_are_404(self):
        theirs = VaultEntry.objects.create(owner=self.bob, **_entry_fields())
        self.assertEqual(self.client.get(f'/vault/passwords/{theirs.id}/').status_code, 404)
        self.assertEqual(self.client.get('/vault/passwords/not-a-uuid/').status_code, 404)
        self.assertEqual(self.client.delete(f'/vault/passwords/{theirs.id}/').status_code, 404)

    def test_bulk_delete(self):
        mine = VaultEntry.objects.create(owner=self.alice, **_entry_fields())
        theirs = VaultEntry.objects.create(owner=self.bob, **_entry_fields())

        response = self._post_json('/vault/passwords/delete/', {'passwordIds': [str(mine.id), str(theirs.id)]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['deletedCount'], 1)

        response = self._post_json('/vault/passwords/delete/', {'passwordIds': []})
        self.assertEqual(response.status_code, 400)

        response = self._post_json('/vault/passwords/delete/', {'passwordIds': [str(theirs.id)]})
        self.assertEqual(response.status_code, 404)

    def test_responses_carry_request_id(self):
        response = self.client.get('/vault/passwords/')
        self.assertIn('X-Request-ID', response.headers)
