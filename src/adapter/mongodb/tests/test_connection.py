"""Tests for the cached MongoClient factory."""

import unittest
from unittest.mock import patch, MagicMock

from pymongo.errors import ServerSelectionTimeoutError

from adapter.mongodb import connection


class TestGetMongodbClient(unittest.TestCase):

    def setUp(self):
        connection.reset_client()
        self.addCleanup(connection.reset_client)

    @patch('adapter.mongodb.connection.MONGODB_URI', None)
    def test_missing_uri(self):
        self.assertIsNone(connection.get_mongodb_client())

    @patch('adapter.mongodb.connection.MongoClient')
    @patch('adapter.mongodb.connection.MONGODB_URI', 'mongodb://db.test:27017')
    def test_connects_once_and_caches(self, mock_client_cls):
        client = connection.get_mongodb_client()
        again = connection.get_mongodb_client()

        self.assertIs(client, again)
        mock_client_cls.assert_called_once()
        self.assertTrue(mock_client_cls.call_args.kwargs['tz_aware'])

    @patch('adapter.mongodb.connection.MongoClient')
    @patch('adapter.mongodb.connection.MONGODB_URI', 'mongodb://db.test:27017')
    def test_initial_failure_is_not_retried(self, mock_client_cls):
        mock_client_cls.return_value.admin.command.side_effect = ServerSelectionTimeoutError("no servers")

        self.assertIsNone(connection.get_mongodb_client())
        self.assertIsNone(connection.get_mongodb_client())
        mock_client_cls.assert_called_once()

    @patch('adapter.mongodb.connection.MongoClient')
    @patch('adapter.mongodb.connection.MONGODB_URI', 'mongodb://db.test:27017')
    def test_reconnects_after_lost_connection(self, mock_client_cls):
        first, second = MagicMock(), MagicMock()
        mock_client_cls.side_effect = [first, second]
        connection.get_mongodb_client()
        first.admin.command.side_effect = ServerSelectionTimeoutError("gone")

        self.assertIs(connection.get_mongodb_client(), second)


if __name__ == '__main__':
    unittest.main()
