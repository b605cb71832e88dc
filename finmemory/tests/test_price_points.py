# finmemory/tests/test_price_points.py
import asyncio
import unittest
from unittest.mock import MagicMock

from finmemory.core import price_points
from finmemory.core.geolocation import GeolocationError, ReportedLocationSource
from finmemory.core.models import GeoCoordinate


class SlowLocationSource:
    async def get_current_position(self, maximum_age):
        await asyncio.sleep(10)


class DeniedLocationSource:
    async def get_current_position(self, maximum_age):
        raise GeolocationError("User denied Geolocation")


class TestDerivePricePoints(unittest.TestCase):
    position = GeoCoordinate(lat=-23.5, lng=-46.6)

    def test_quantity_absent_uses_total_as_unit_price(self):
        points = price_points.derive_price_points(
            "u1", "Mercado Bom", "Supermercado", [{"descricao": "Café", "valor_total": 45.90}], self.position
        )
        self.assertEqual(len(points), 1)
        self.assertAlmostEqual(points[0].price, 45.90)

    def test_quantity_divides_total(self):
        points = price_points.derive_price_points(
            "u1", "Mercado Bom", None, [{"descricao": "Arroz", "quantidade": 2, "valor_total": 10.00}], self.position
        )
        self.assertAlmostEqual(points[0].price, 5.00)

    def test_invalid_items_are_skipped_but_siblings_kept(self):
        items = [
            {"descricao": "", "valor_total": 3.0},
            {"descricao": "Brinde", "valor_total": 0},
            {"descricao": "Desconto", "valor_total": -2.0},
            {"quantidade": 1, "valor_total": 4.0},
            {"descricao": "Leite", "quantidade": 3, "valor_total": 12.0},
        ]
        points = price_points.derive_price_points("u1", "Mercado Bom", "Supermercado", items, self.position)
        self.assertEqual([p.product_name for p in points], ["Leite"])
        self.assertAlmostEqual(points[0].price, 4.0)

    def test_category_defaults_to_outros(self):
        for category in [None, "", "   "]:
            points = price_points.derive_price_points(
                "u1", "Loja", category, [{"descricao": "Pão", "valor_total": 1.0}], self.position
            )
            self.assertEqual(points[0].category, "Outros")

    def test_row_carries_coordinate(self):
        points = price_points.derive_price_points(
            "u1", "Loja", "Padaria", [{"descricao": "Pão", "valor_total": 1.0}], self.position
        )
        self.assertEqual(
            points[0].to_row(),
            {
                "user_id": "u1",
                "store_name": "Loja",
                "product_name": "Pão",
                "price": 1.0,
                "lat": -23.5,
                "lng": -46.6,
                "category": "Padaria",
            },
        )


class TestCreatePricePointsFromTransaction(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.mock_supabase_client = MagicMock()
        self.mock_table_methods = MagicMock()
        self.mock_table_methods.insert.return_value = self.mock_table_methods
        self.mock_table_methods.execute.return_value = MagicMock(data=[])
        self.mock_supabase_client.table.return_value = self.mock_table_methods
        self.located = ReportedLocationSource(lat=-23.5, lng=-46.6)

    async def _create(self, **overrides):
        params = dict(
            user_id="u1",
            store_name="Mercado Bom",
            category=None,
            items=[{"descricao": "Feijão", "quantidade": 0, "valor_total": 8.00}],
            location_source=self.located,
        )
        params.update(overrides)
        return await price_points.create_price_points_from_transaction(self.mock_supabase_client, **params)

    async def test_empty_items_or_missing_store_write_nothing(self):
        self.assertFalse(await self._create(items=[]))
        self.assertFalse(await self._create(items=None))
        self.assertFalse(await self._create(store_name=None))
        self.assertFalse(await self._create(store_name="  "))
        self.mock_supabase_client.table.assert_not_called()

    async def test_zero_quantity_item_with_location_creates_one_point(self):
        self.assertTrue(await self._create())

        self.mock_supabase_client.table.assert_called_once_with("price_points")
        rows = self.mock_table_methods.insert.call_args[0][0]
        self.assertEqual(len(rows), 1)
        self.assertAlmostEqual(rows[0]["price"], 8.00)
        self.assertEqual(rows[0]["category"], "Outros")
        self.assertEqual((rows[0]["lat"], rows[0]["lng"]), (-23.5, -46.6))

    async def test_geolocation_unavailable_writes_nothing(self):
        result = await self._create(
            items=[{"descricao": "Arroz", "quantidade": 2, "valor_total": 10.00}],
            location_source=ReportedLocationSource.from_payload(None),
        )
        self.assertFalse(result)
        self.mock_supabase_client.table.assert_not_called()

    async def test_geolocation_denied_writes_nothing(self):
        self.assertFalse(await self._create(location_source=DeniedLocationSource()))
        self.mock_supabase_client.table.assert_not_called()

    async def test_geolocation_timeout_writes_nothing(self):
        result = await self._create(location_source=SlowLocationSource(), timeout=0.01)
        self.assertFalse(result)
        self.mock_supabase_client.table.assert_not_called()

    async def test_all_items_invalid_writes_nothing(self):
        result = await self._create(items=[{"descricao": "Brinde", "valor_total": 0}])
        self.assertFalse(result)
        self.mock_supabase_client.table.assert_not_called()

    async def test_batch_insert_is_single_write(self):
        items = [
            {"descricao": "Arroz", "quantidade": 2, "valor_total": 10.00},
            {"descricao": "Feijão", "valor_total": 8.00},
            {"descricao": "", "valor_total": 1.00},
        ]
        self.assertTrue(await self._create(items=items, category="Supermercado"))
        self.mock_table_methods.insert.assert_called_once()
        rows = self.mock_table_methods.insert.call_args[0][0]
        self.assertEqual([r["product_name"] for r in rows], ["Arroz", "Feijão"])

    async def test_storage_failure_is_logged_and_swallowed(self):
        self.mock_table_methods.execute.side_effect = Exception("connection reset")

        with self.assertLogs("finmemory.core.price_points", level="ERROR") as logs:
            result = await self._create()

        self.assertFalse(result)
        self.assertIn("event=price_points.insert_failed", "\n".join(logs.output))


if __name__ == "__main__":
    unittest.main()
