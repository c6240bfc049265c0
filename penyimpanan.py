"""
Penyimpanan data: Supabase (cloud) dengan cadangan file CSV lokal.

Snapshot lokal selalu ditulis pada setiap perubahan. Jika Supabase
terkonfigurasi, perubahan yang sama juga dikirim ke sana; kegagalan
kirim hanya dicatat di log, perubahan lokal tidak dibatalkan.
"""

import logging
import os

import pandas as pd
from pydantic import ValidationError
from supabase import create_client

from model import (
    Pengaturan,
    iuran_dari_baris,
    iuran_ke_baris,
    pengaturan_dari_baris,
    pengaturan_ke_baris,
    pengguna_dari_baris,
    pengguna_ke_baris,
    transaksi_dari_baris,
    transaksi_ke_baris,
    warga_dari_baris,
    warga_ke_baris,
)

logger = logging.getLogger(__name__)

TABEL_WARGA = "warga"
TABEL_TRANSAKSI = "transaksi"
TABEL_IURAN = "iuran_harian"
TABEL_PENGATURAN = "pengaturan"
TABEL_PENGGUNA = "pengguna"

KOLOM = {
    TABEL_WARGA: ["id", "nama", "no_kk", "whatsapp", "blok", "terdaftar_at"],
    TABEL_TRANSAKSI: ["id", "tanggal_tampilan", "keterangan", "sub_keterangan", "kategori", "jumlah", "timestamp_ms"],
    TABEL_IURAN: ["warga_id", "tanggal", "jumlah"],
    TABEL_PENGATURAN: ["kunci", "nilai"],
    TABEL_PENGGUNA: ["id", "nama", "jabatan", "user_id", "pass", "role"],
}

# tabel yang wajib terbaca dari cloud; gagal satu berarti mode lokal
TABEL_INTI = [TABEL_WARGA, TABEL_TRANSAKSI, TABEL_IURAN, TABEL_PENGATURAN]


def snapshot_kosong():
    return {
        "warga": [],
        "transaksi": [],
        "iuran": {},
        "pengaturan": Pengaturan(),
        "pengguna": [],
    }


def _konversi(daftar_baris, fungsi, tabel):
    hasil = []
    for baris in daftar_baris:
        try:
            hasil.append(fungsi(baris))
        except (KeyError, ValidationError) as e:
            logger.warning("Baris %s dilewati: %s", tabel, e)
    return hasil


def snapshot_dari_tabel(tabel):
    """Ubah isi mentah tiap tabel (list of dict) jadi snapshot model."""
    return {
        "warga": _konversi(tabel.get(TABEL_WARGA, []), warga_dari_baris, TABEL_WARGA),
        "transaksi": _konversi(tabel.get(TABEL_TRANSAKSI, []), transaksi_dari_baris, TABEL_TRANSAKSI),
        "iuran": iuran_dari_baris(tabel.get(TABEL_IURAN, [])),
        "pengaturan": pengaturan_dari_baris(tabel.get(TABEL_PENGATURAN, [])),
        "pengguna": _konversi(tabel.get(TABEL_PENGGUNA, []), pengguna_dari_baris, TABEL_PENGGUNA),
    }


def snapshot_ke_tabel(snapshot):
    return {
        TABEL_WARGA: [warga_ke_baris(w) for w in snapshot["warga"]],
        TABEL_TRANSAKSI: [transaksi_ke_baris(t) for t in snapshot["transaksi"]],
        TABEL_IURAN: iuran_ke_baris(snapshot["iuran"]),
        TABEL_PENGATURAN: pengaturan_ke_baris(snapshot["pengaturan"]),
        TABEL_PENGGUNA: [pengguna_ke_baris(p) for p in snapshot["pengguna"]],
    }


# ---------------- Penyimpanan Lokal (CSV) ----------------

class PenyimpananLokal:
    def __init__(self, folder):
        self.folder = folder

    def get_file(self, tabel):
        return os.path.join(self.folder, f"{tabel}.csv")

    def muat_tabel(self, tabel):
        filename = self.get_file(tabel)
        if not os.path.exists(filename):
            return []
        try:
            # semua kolom dibaca sebagai teks, konversi tipe di model.py
            df = pd.read_csv(filename, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            return []
        return df.to_dict("records")

    def simpan_tabel(self, tabel, daftar_baris):
        os.makedirs(self.folder, exist_ok=True)
        df = pd.DataFrame(daftar_baris, columns=KOLOM[tabel])
        df.to_csv(self.get_file(tabel), index=False)


# ---------------- Penyimpanan Cloud (Supabase) ----------------

class PenyimpananSupabase:
    def __init__(self, client):
        self.client = client

    def ambil_tabel(self, tabel):
        query = self.client.from_(tabel).select("*")
        if tabel == TABEL_TRANSAKSI:
            query = query.order("timestamp_ms", desc=True)
        response = query.execute()
        return response.data or []

    def tambah(self, tabel, data):
        self.client.from_(tabel).insert(data).execute()

    def ubah(self, tabel, db_id, data):
        self.client.from_(tabel).update(data).eq("id", db_id).execute()

    def hapus(self, tabel, db_id):
        self.client.from_(tabel).delete().eq("id", db_id).execute()

    def upsert(self, tabel, data, on_conflict):
        if not data:
            return
        self.client.from_(tabel).upsert(data, on_conflict=on_conflict).execute()


# ---------------- Gabungan ----------------

class Penyimpanan:
    def __init__(self, lokal, remote=None):
        self.lokal = lokal
        self.remote = remote

    @property
    def online(self):
        return self.remote is not None

    def muat(self):
        """
        Ambil seluruh data. Mengembalikan (snapshot, galat).

        Jika Supabase gagal dibaca, snapshot lokal terakhir yang dipakai dan
        galat berisi pesan untuk ditampilkan ke pengguna.
        """
        galat = None
        if self.remote is not None:
            try:
                tabel = {nama: self.remote.ambil_tabel(nama) for nama in TABEL_INTI}
            except Exception as e:
                logger.error("Koneksi Supabase gagal: %s", e)
                galat = f"Sinkronisasi gagal: {e}. Aplikasi tetap berjalan dalam mode lokal."
            else:
                tabel[TABEL_PENGGUNA] = self._ambil_pengguna()
                snapshot = snapshot_dari_tabel(tabel)
                self.simpan_lokal(snapshot)
                return snapshot, None
        else:
            logger.warning("Konfigurasi Cloud tidak ditemukan. Menggunakan penyimpanan lokal.")

        tabel = {nama: self.lokal.muat_tabel(nama) for nama in KOLOM}
        return snapshot_dari_tabel(tabel), galat

    def _ambil_pengguna(self):
        # tabel pengguna boleh belum ada di cloud; pakai salinan lokal
        try:
            return self.remote.ambil_tabel(TABEL_PENGGUNA)
        except Exception as e:
            logger.warning("Tabel %s tidak bisa dibaca dari cloud: %s", TABEL_PENGGUNA, e)
            return self.lokal.muat_tabel(TABEL_PENGGUNA)

    def simpan_lokal(self, snapshot):
        for tabel, daftar_baris in snapshot_ke_tabel(snapshot).items():
            self.lokal.simpan_tabel(tabel, daftar_baris)

    def _kirim(self, keterangan, nama_fungsi, *args, **kwargs):
        if self.remote is None:
            return False
        try:
            getattr(self.remote, nama_fungsi)(*args, **kwargs)
            return True
        except Exception as e:
            logger.error("Cloud Error (%s): %s", keterangan, e)
            return False

    def kirim_warga_baru(self, warga):
        baris = warga_ke_baris(warga)
        # terdaftar_at diisi default kolom di database
        baris.pop("terdaftar_at")
        return self._kirim("tambah warga", "tambah", TABEL_WARGA, [baris])

    def kirim_warga(self, warga):
        baris = warga_ke_baris(warga)
        baris.pop("terdaftar_at")
        baris.pop("id")
        return self._kirim("ubah warga", "ubah", TABEL_WARGA, warga.id, baris)

    def kirim_hapus_warga(self, warga_id):
        return self._kirim("hapus warga", "hapus", TABEL_WARGA, warga_id)

    def kirim_transaksi(self, transaksi):
        return self._kirim(
            "tambah transaksi", "tambah",
            TABEL_TRANSAKSI, [transaksi_ke_baris(transaksi)],
        )

    def kirim_iuran(self, warga_id, sel):
        """Upsert sel iuran (tanggal -> jumlah akumulasi) milik satu warga."""
        data = [{"warga_id": warga_id, "tanggal": tanggal, "jumlah": jumlah} for tanggal, jumlah in sel.items()]
        return self._kirim(
            "simpan iuran", "upsert",
            TABEL_IURAN, data, on_conflict="warga_id,tanggal",
        )

    def kirim_pengaturan(self, pengaturan):
        return self._kirim(
            "simpan pengaturan", "upsert",
            TABEL_PENGATURAN, pengaturan_ke_baris(pengaturan), on_conflict="kunci",
        )

    def kirim_pengguna(self, pengguna):
        return self._kirim(
            "tambah pengguna", "tambah",
            TABEL_PENGGUNA, [pengguna_ke_baris(pengguna)],
        )

    def kirim_hapus_pengguna(self, pengguna_id):
        return self._kirim("hapus pengguna", "hapus", TABEL_PENGGUNA, pengguna_id)

    def kirim_semua(self, snapshot):
        """Timpa isi cloud dengan snapshot (dipakai setelah impor backup)."""
        tabel = snapshot_ke_tabel(snapshot)
        warga = [{k: v for k, v in b.items() if k != "terdaftar_at"} for b in tabel[TABEL_WARGA]]
        hasil = [
            self._kirim("impor warga", "upsert", TABEL_WARGA, warga, on_conflict="id"),
            self._kirim("impor transaksi", "upsert",
                        TABEL_TRANSAKSI, tabel[TABEL_TRANSAKSI], on_conflict="id"),
            self._kirim("impor iuran", "upsert",
                        TABEL_IURAN, tabel[TABEL_IURAN], on_conflict="warga_id,tanggal"),
        ]
        return all(hasil)


def buat_penyimpanan(config):
    lokal = PenyimpananLokal(config["DATA_DIR"])
    url = config.get("SUPABASE_URL") or ""

    # client hanya dibuat jika URL valid, selain itu mode lokal
    if not url.startswith("http"):
        return Penyimpanan(lokal)
    try:
        client = create_client(url, config.get("SUPABASE_KEY") or "")
        logger.info("--- BERHASIL KONEK KE SUPABASE ---")
    except Exception as e:
        logger.error("--- GAGAL KONEK KE SUPABASE: %s ---", e)
        return Penyimpanan(lokal)
    return Penyimpanan(lokal, PenyimpananSupabase(client))
