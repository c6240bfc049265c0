from types import SimpleNamespace

import pytest

from app import app as flask_app
from data_rt import DataRT
from penyimpanan import Penyimpanan, PenyimpananLokal


class FakeQuery:
    def __init__(self, client, tabel):
        self.client = client
        self.tabel = tabel
        self.aksi = None
        self.data = None
        self.kwargs = {}

    def select(self, *args):
        self.aksi = "select"
        return self

    def order(self, kolom, desc=False):
        self.kwargs["order"] = (kolom, desc)
        return self

    def insert(self, data):
        self.aksi, self.data = "insert", data
        return self

    def update(self, data):
        self.aksi, self.data = "update", data
        return self

    def delete(self):
        self.aksi = "delete"
        return self

    def upsert(self, data, on_conflict=None):
        self.aksi, self.data = "upsert", data
        self.kwargs["on_conflict"] = on_conflict
        return self

    def eq(self, kolom, nilai):
        self.kwargs["eq"] = (kolom, nilai)
        return self

    def execute(self):
        if self.client.gagal:
            raise RuntimeError("koneksi terputus")
        if self.tabel in self.client.tabel_gagal:
            raise RuntimeError(f'relation "{self.tabel}" does not exist')
        self.client.panggilan.append((self.tabel, self.aksi, self.data, dict(self.kwargs)))
        if self.aksi == "select":
            return SimpleNamespace(data=list(self.client.tabel.get(self.tabel, [])))
        return SimpleNamespace(data=[])


class FakeSupabase:
    """Pengganti supabase.Client untuk tes: mencatat setiap query yang dieksekusi."""

    def __init__(self, tabel=None, gagal=False, tabel_gagal=()):
        self.tabel = tabel or {}
        self.gagal = gagal
        self.tabel_gagal = set(tabel_gagal)
        self.panggilan = []

    def from_(self, tabel):
        return FakeQuery(self, tabel)


@pytest.fixture
def folder_data(tmp_path):
    return str(tmp_path / "data")


@pytest.fixture
def penyimpanan_lokal(folder_data):
    return Penyimpanan(PenyimpananLokal(folder_data))


@pytest.fixture
def data_rt(penyimpanan_lokal):
    return DataRT.muat(penyimpanan_lokal)


@pytest.fixture
def warga(data_rt):
    return data_rt.tambah_warga("Budi Santoso", "3201010101010001", "08123456789", "A-12")


@pytest.fixture
def app_rt(folder_data):
    flask_app.config.update(
        TESTING=True,
        DATA_DIR=folder_data,
        SUPABASE_URL="",
        SUPABASE_KEY="",
    )
    flask_app.extensions.pop("data_rt", None)
    yield flask_app
    flask_app.extensions.pop("data_rt", None)


@pytest.fixture
def client(app_rt):
    return app_rt.test_client()


@pytest.fixture
def client_login(client):
    with client.session_transaction() as sess:
        sess["logged_in"] = True
        sess["user_id"] = "sinoman01"
        sess["username"] = "Administrator"
        sess["role"] = "admin"
    return client
