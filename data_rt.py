"""
Wadah state aplikasi dan perintah-perintah yang mengubahnya.

Semua perubahan data (warga, transaksi, iuran harian, pengaturan,
pengguna) lewat method DataRT. Setiap perintah langsung menerapkan
perubahan di memori, menulis snapshot lokal, lalu mengirim perubahan
ke cloud jika tersedia. Permintaan yang tidak lengkap diabaikan
(mengembalikan None) tanpa menulis apa pun.
"""

import logging
import uuid
from datetime import date, datetime

from kalender import (
    NAMA_BULAN,
    format_tanggal,
    geser_bulan,
    jumlah_hari,
    kunci_tanggal,
    timestamp_ms,
)
from model import (
    DAFTAR_ROLE,
    KELUAR,
    MASUK,
    ROLE_ADMIN,
    Pengguna,
    Transaksi,
    Warga,
)
from penyimpanan import snapshot_kosong

logger = logging.getLogger(__name__)

AKUN_BAWAAN = Pengguna(
    id="bawaan",
    nama="Administrator",
    jabatan="Admin Lingkungan",
    user_id="sinoman01",
    password="sinoman",
    role=ROLE_ADMIN,
)

MODE_HARIAN = "harian"
MODE_AWAL_BULAN = "awal_bulan"


def _id_baru():
    return str(uuid.uuid4())


def _nama_periode(bulan, tahun):
    return f"{NAMA_BULAN[bulan - 1]} {tahun}"


class DataRT:
    def __init__(self, penyimpanan=None, snapshot=None):
        self.penyimpanan = penyimpanan
        self.galat_sinkron = None
        self._pasang(snapshot or snapshot_kosong())

    @classmethod
    def muat(cls, penyimpanan):
        data = cls(penyimpanan)
        data.muat_ulang()
        return data

    def muat_ulang(self):
        """Ambil ulang seluruh data dari penyimpanan (data terakhir yang menang)."""
        snapshot, galat = self.penyimpanan.muat()
        self._pasang(snapshot)
        self.galat_sinkron = galat
        return galat

    def _pasang(self, snapshot):
        self.list_warga = list(snapshot["warga"])
        self.list_transaksi = list(snapshot["transaksi"])
        self.iuran = {warga_id: dict(log) for warga_id, log in snapshot["iuran"].items()}
        self.pengaturan = snapshot["pengaturan"]
        self.list_pengguna = list(snapshot["pengguna"])

    def snapshot(self):
        return {
            "warga": list(self.list_warga),
            "transaksi": list(self.list_transaksi),
            "iuran": {warga_id: dict(log) for warga_id, log in self.iuran.items()},
            "pengaturan": self.pengaturan,
            "pengguna": list(self.list_pengguna),
        }

    @property
    def nominal_wajib(self):
        return self.pengaturan.nominal_wajib

    def _simpan(self, *kiriman):
        """Tulis snapshot lokal, lalu kirim tiap (nama_fungsi, args...) ke penyimpanan."""
        if self.penyimpanan is None:
            return
        self.penyimpanan.simpan_lokal(self.snapshot())
        for nama_fungsi, *args in kiriman:
            getattr(self.penyimpanan, nama_fungsi)(*args)

    # ---------------- Warga ----------------

    def cari_warga(self, warga_id):
        return next((w for w in self.list_warga if w.id == warga_id), None)

    def tambah_warga(self, nama, no_kk, whatsapp="", blok="", sekarang=None):
        nama, no_kk = (nama or "").strip(), (no_kk or "").strip()
        if not nama or not no_kk:
            return None
        warga = Warga(
            id=_id_baru(),
            nama=nama,
            no_kk=no_kk,
            whatsapp=(whatsapp or "").strip(),
            blok=(blok or "").strip(),
            terdaftar_at=format_tanggal(sekarang or datetime.now()),
        )
        self.list_warga.append(warga)
        self._simpan(("kirim_warga_baru", warga))
        logger.info("Warga baru terdaftar: %s (%s)", warga.nama, warga.id)
        return warga

    def ubah_warga(self, warga_id, nama=None, no_kk=None, whatsapp=None, blok=None):
        warga = self.cari_warga(warga_id)
        if warga is None:
            return None
        perubahan = {
            kolom: nilai.strip()
            for kolom, nilai in (("nama", nama), ("no_kk", no_kk), ("whatsapp", whatsapp), ("blok", blok))
            if nilai is not None
        }
        if any(kolom in perubahan and not perubahan[kolom] for kolom in ("nama", "no_kk")):
            return None
        baru = warga.model_copy(update=perubahan)
        self.list_warga = [baru if w.id == warga_id else w for w in self.list_warga]
        self._simpan(("kirim_warga", baru))
        return baru

    def hapus_warga(self, warga_id):
        # riwayat iuran & transaksi warga sengaja tidak ikut dihapus
        if self.cari_warga(warga_id) is None:
            return False
        self.list_warga = [w for w in self.list_warga if w.id != warga_id]
        self._simpan(("kirim_hapus_warga", warga_id))
        logger.info("Warga %s dihapus", warga_id)
        return True

    # ---------------- Transaksi ----------------

    def _buat_transaksi(self, keterangan, jumlah, kategori, sub_keterangan="", tanggal=None, sekarang=None):
        sekarang = sekarang or datetime.now()
        if tanggal is None:
            tanggal = format_tanggal(sekarang)
        elif isinstance(tanggal, date):
            tanggal = format_tanggal(tanggal)
        transaksi = Transaksi(
            id=_id_baru(),
            tanggal=tanggal,
            keterangan=keterangan,
            sub_keterangan=sub_keterangan,
            kategori=kategori,
            jumlah=jumlah,
            timestamp=timestamp_ms(sekarang),
        )
        # terbaru di depan, sama seperti urutan dari database
        self.list_transaksi.insert(0, transaksi)
        return transaksi

    def tambah_transaksi(self, keterangan, jumlah, kategori=MASUK, sub_keterangan="", tanggal=None, sekarang=None):
        keterangan = (keterangan or "").strip()
        if not keterangan or kategori not in (MASUK, KELUAR) or jumlah <= 0:
            return None
        transaksi = self._buat_transaksi(
            keterangan, int(jumlah), kategori, (sub_keterangan or "").strip(), tanggal, sekarang
        )
        self._simpan(("kirim_transaksi", transaksi))
        return transaksi

    # ---------------- Iuran ----------------

    def _tambah_sel(self, warga_id, tambahan):
        """Tambahkan (bukan timpa) jumlah ke sel iuran. Mengembalikan nilai akhir sel yang berubah."""
        log_warga = self.iuran.setdefault(warga_id, {})
        for kunci, jumlah in tambahan.items():
            log_warga[kunci] = log_warga.get(kunci, 0) + jumlah
        return {kunci: log_warga[kunci] for kunci in tambahan}

    def _catat_setoran(self, warga, jumlah, sub_keterangan, tambahan, sekarang):
        kiriman = []
        if tambahan:
            sel = self._tambah_sel(warga.id, tambahan)
            kiriman.append(("kirim_iuran", warga.id, sel))
        transaksi = self._buat_transaksi(
            f"Iuran: {warga.nama}", jumlah, MASUK, sub_keterangan, sekarang=sekarang
        )
        kiriman.append(("kirim_transaksi", transaksi))
        self._simpan(*kiriman)
        logger.info("Iuran %s tercatat: %s (%s)", warga.nama, jumlah, sub_keterangan)
        return transaksi

    def catat_iuran_hari(self, warga_id, hari, bulan, tahun, jumlah, sekarang=None):
        """
        Catat setoran untuk tanggal-tanggal tertentu dalam satu bulan.

        Jumlah dibagi rata (dibulatkan ke bawah) ke setiap tanggal; sisa
        pembagian tidak dicatat di iuran harian, tapi transaksi tetap
        berisi jumlah penuh.
        """
        warga = self.cari_warga(warga_id)
        if warga is None or jumlah <= 0 or not 1 <= bulan <= 12:
            return None
        batas = jumlah_hari(bulan, tahun)
        daftar_hari = sorted({h for h in hari if 1 <= h <= batas})
        if not daftar_hari:
            return None

        per_hari = jumlah // len(daftar_hari)
        tambahan = {kunci_tanggal(tahun, bulan, h): per_hari for h in daftar_hari}
        return self._catat_setoran(warga, jumlah, _nama_periode(bulan, tahun), tambahan, sekarang)

    def catat_iuran_bulan(self, warga_id, bulan_awal, tahun_awal, jumlah_bulan, jumlah,
                          mode=MODE_HARIAN, sekarang=None):
        """
        Catat paket beberapa bulan berturut-turut.

        Jumlah dibagi rata per bulan, lalu (mode harian) dibagi rata ke tiap
        hari di bulan itu, keduanya dibulatkan ke bawah. Mode awal_bulan
        mencatat jatah sebulan penuh di tanggal 01.
        """
        warga = self.cari_warga(warga_id)
        if warga is None or jumlah <= 0 or jumlah_bulan < 1 or not 1 <= bulan_awal <= 12:
            return None
        if mode not in (MODE_HARIAN, MODE_AWAL_BULAN):
            return None

        per_bulan = jumlah // jumlah_bulan
        tambahan = {}
        for i in range(jumlah_bulan):
            bulan, tahun = geser_bulan(bulan_awal, tahun_awal, i)
            if mode == MODE_AWAL_BULAN:
                kunci = kunci_tanggal(tahun, bulan, 1)
                tambahan[kunci] = tambahan.get(kunci, 0) + per_bulan
                continue
            banyak_hari = jumlah_hari(bulan, tahun)
            per_hari = per_bulan // banyak_hari
            for hari in range(1, banyak_hari + 1):
                tambahan[kunci_tanggal(tahun, bulan, hari)] = per_hari

        bulan_akhir, tahun_akhir = geser_bulan(bulan_awal, tahun_awal, jumlah_bulan - 1)
        if jumlah_bulan == 1:
            sub_keterangan = f"Paket {_nama_periode(bulan_awal, tahun_awal)}"
        else:
            sub_keterangan = (
                f"Paket {jumlah_bulan} Bulan ({_nama_periode(bulan_awal, tahun_awal)}"
                f" - {_nama_periode(bulan_akhir, tahun_akhir)})"
            )
        return self._catat_setoran(warga, jumlah, sub_keterangan, tambahan, sekarang)

    def catat_iuran_bebas(self, warga_id, jumlah, catatan="", sekarang=None):
        """Setoran bebas: hanya membuat transaksi, iuran harian tidak disentuh."""
        warga = self.cari_warga(warga_id)
        if warga is None or jumlah <= 0:
            return None
        sub_keterangan = (catatan or "").strip() or "Pembayaran Bebas"
        return self._catat_setoran(warga, jumlah, sub_keterangan, {}, sekarang)

    # ---------------- Pengaturan ----------------

    def ubah_nominal_wajib(self, nilai):
        if nilai < 0:
            return None
        self.pengaturan = self.pengaturan.model_copy(update={"nominal_wajib": int(nilai)})
        self._simpan(("kirim_pengaturan", self.pengaturan))
        logger.info("Nominal wajib diubah menjadi %s", nilai)
        return self.pengaturan

    def ubah_profil(self, nama, alamat="", logo=None):
        nama = (nama or "").strip()
        if not nama:
            return None
        perubahan = {"nama_instansi": nama, "alamat_instansi": (alamat or "").strip()}
        if logo is not None:
            perubahan["logo_instansi"] = logo
        self.pengaturan = self.pengaturan.model_copy(update=perubahan)
        self._simpan(("kirim_pengaturan", self.pengaturan))
        return self.pengaturan

    # ---------------- Pengguna ----------------

    def semua_pengguna(self):
        return [AKUN_BAWAAN] + self.list_pengguna

    def tambah_pengguna(self, nama, user_id, password, role, jabatan=""):
        nama, user_id = (nama or "").strip(), (user_id or "").strip()
        if not nama or not user_id or not password or role not in DAFTAR_ROLE:
            return None
        if any(p.user_id == user_id for p in self.semua_pengguna()):
            return None
        pengguna = Pengguna(
            id=_id_baru(), nama=nama, jabatan=(jabatan or "").strip(),
            user_id=user_id, password=password, role=role,
        )
        self.list_pengguna.append(pengguna)
        self._simpan(("kirim_pengguna", pengguna))
        return pengguna

    def hapus_pengguna(self, pengguna_id):
        if not any(p.id == pengguna_id for p in self.list_pengguna):
            return False
        self.list_pengguna = [p for p in self.list_pengguna if p.id != pengguna_id]
        self._simpan(("kirim_hapus_pengguna", pengguna_id))
        return True

    def cek_login(self, user_id, password):
        return next(
            (p for p in self.semua_pengguna() if p.user_id == user_id and p.password == password),
            None,
        )

    # ---------------- Impor ----------------

    def ganti_semua(self, snapshot):
        """Timpa warga, transaksi, dan iuran dengan isi backup (bukan digabung)."""
        self.list_warga = list(snapshot["warga"])
        self.list_transaksi = list(snapshot["transaksi"])
        self.iuran = {warga_id: dict(log) for warga_id, log in snapshot["iuran"].items()}
        self._simpan(("kirim_semua", self.snapshot()))
        logger.info(
            "Data diimpor: %s warga, %s transaksi", len(self.list_warga), len(self.list_transaksi)
        )
