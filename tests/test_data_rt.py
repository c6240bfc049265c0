from datetime import datetime

from data_rt import MODE_AWAL_BULAN, DataRT
from model import KELUAR, MASUK
from tunggakan import periode_tahun_berjalan, rekap_warga, tunggakan_tahun_berjalan

SEKARANG = datetime(2024, 3, 15, 10, 0)


# ---- Warga ----

def test_tambah_warga(data_rt):
    warga = data_rt.tambah_warga(" Budi ", "3201", sekarang=SEKARANG)
    assert warga.nama == "Budi"
    assert warga.terdaftar_at == "15 Mar 2024"
    assert data_rt.cari_warga(warga.id) == warga


def test_tambah_warga_tanpa_nama_diabaikan(data_rt):
    assert data_rt.tambah_warga("", "3201") is None
    assert data_rt.tambah_warga("Budi", "  ") is None
    assert data_rt.list_warga == []


def test_ubah_warga(data_rt, warga):
    baru = data_rt.ubah_warga(warga.id, blok="B-7")
    assert baru.blok == "B-7"
    assert baru.nama == warga.nama
    assert data_rt.cari_warga(warga.id).blok == "B-7"
    assert data_rt.ubah_warga("tidak-ada", nama="X") is None


def test_ubah_warga_nama_atau_kk_kosong_ditolak(data_rt, warga):
    assert data_rt.ubah_warga(warga.id, no_kk="  ") is None
    assert data_rt.ubah_warga(warga.id, nama="") is None
    assert data_rt.cari_warga(warga.id) == warga


def test_hapus_warga_tidak_menghapus_riwayat(data_rt, warga):
    data_rt.catat_iuran_hari(warga.id, [1], 3, 2024, 500, sekarang=SEKARANG)

    assert data_rt.hapus_warga(warga.id)

    assert data_rt.cari_warga(warga.id) is None
    assert data_rt.iuran[warga.id] == {"2024-03-01": 500}
    assert len(data_rt.list_transaksi) == 1
    assert not data_rt.hapus_warga(warga.id)


def test_hapus_warga_lain_tidak_mengubah_rekap(data_rt, warga):
    sekarang = datetime(2024, 4, 9, 12, 0)
    lain = data_rt.tambah_warga("Andi", "3202")
    data_rt.catat_iuran_hari(warga.id, [1, 2, 3], 3, 2024, 1500, sekarang=sekarang)
    data_rt.catat_iuran_hari(lain.id, [1], 3, 2024, 500, sekarang=sekarang)
    periode = periode_tahun_berjalan(sekarang)

    def rekap_budi():
        tunggakan = tunggakan_tahun_berjalan(data_rt.list_warga, data_rt.iuran, 500, sekarang)
        return (
            rekap_warga(data_rt.cari_warga(warga.id), data_rt.iuran, periode, 500, sekarang),
            [r for r in tunggakan if r["id"] == warga.id],
        )

    sebelum = rekap_budi()
    assert data_rt.hapus_warga(lain.id)

    assert rekap_budi() == sebelum
    assert sebelum[0]["terbayar"] == 1500


# ---- Iuran per hari ----

def test_iuran_hari_dibagi_rata(data_rt, warga):
    transaksi = data_rt.catat_iuran_hari(warga.id, [1, 2, 3], 3, 2024, 3000, sekarang=SEKARANG)

    assert data_rt.iuran[warga.id] == {"2024-03-01": 1000, "2024-03-02": 1000, "2024-03-03": 1000}
    assert transaksi.kategori == MASUK
    assert transaksi.jumlah == 3000
    assert transaksi.keterangan == "Iuran: Budi Santoso"
    assert transaksi.sub_keterangan == "Maret 2024"
    assert data_rt.list_transaksi == [transaksi]


def test_iuran_hari_menambah_sel_lama(data_rt, warga):
    data_rt.catat_iuran_hari(warga.id, [1, 2, 3], 3, 2024, 3000, sekarang=SEKARANG)
    data_rt.catat_iuran_hari(warga.id, [1], 3, 2024, 500, sekarang=SEKARANG)

    assert data_rt.iuran[warga.id]["2024-03-01"] == 1500
    assert data_rt.iuran[warga.id]["2024-03-02"] == 1000
    assert len(data_rt.list_transaksi) == 2


def test_iuran_hari_sisa_pembagian(data_rt, warga):
    transaksi = data_rt.catat_iuran_hari(warga.id, [1, 2, 3], 3, 2024, 1000, sekarang=SEKARANG)

    assert set(data_rt.iuran[warga.id].values()) == {333}
    assert sum(data_rt.iuran[warga.id].values()) == 999
    assert transaksi.jumlah == 1000


def test_iuran_hari_tanggal_ganda_dan_tidak_valid(data_rt, warga):
    data_rt.catat_iuran_hari(warga.id, [2, 2, 31, 30], 2, 2024, 1000, sekarang=SEKARANG)
    assert data_rt.iuran[warga.id] == {"2024-02-02": 1000}


def test_iuran_hari_diabaikan_tanpa_efek(data_rt, warga):
    assert data_rt.catat_iuran_hari("tidak-ada", [1], 3, 2024, 500) is None
    assert data_rt.catat_iuran_hari(warga.id, [], 3, 2024, 500) is None
    assert data_rt.catat_iuran_hari(warga.id, [1], 3, 2024, 0) is None
    assert data_rt.catat_iuran_hari(warga.id, [30], 2, 2024, 500) is None
    assert data_rt.iuran == {}
    assert data_rt.list_transaksi == []


# ---- Iuran paket bulanan ----

def test_paket_satu_bulan_sisa_pembagian(data_rt, warga):
    transaksi = data_rt.catat_iuran_bulan(warga.id, 2, 2024, 1, 15000, sekarang=SEKARANG)

    log = data_rt.iuran[warga.id]
    assert len(log) == 29
    assert set(log.values()) == {15000 // 29}
    assert transaksi.jumlah == 15000
    assert transaksi.sub_keterangan == "Paket Februari 2024"


def test_paket_dua_bulan_jan_feb_kabisat(data_rt, warga):
    data_rt.catat_iuran_bulan(warga.id, 1, 2024, 2, 6000, sekarang=SEKARANG)

    log = data_rt.iuran[warga.id]
    januari = [v for k, v in log.items() if k.startswith("2024-01")]
    februari = [v for k, v in log.items() if k.startswith("2024-02")]
    assert len(januari) == 31
    assert set(januari) == {96}
    assert len(februari) == 29
    assert set(februari) == {103}
    assert data_rt.list_transaksi[0].jumlah == 6000


def test_paket_lewat_desember_pindah_tahun(data_rt, warga):
    transaksi = data_rt.catat_iuran_bulan(warga.id, 12, 2024, 2, 62000, sekarang=SEKARANG)

    log = data_rt.iuran[warga.id]
    assert len(log) == 62
    assert log["2024-12-31"] == 1000
    assert log["2025-01-01"] == 1000
    assert log["2025-01-31"] == 1000
    assert transaksi.sub_keterangan == "Paket 2 Bulan (Desember 2024 - Januari 2025)"


def test_paket_beda_panjang_bulan(data_rt, warga):
    # 30000 per bulan: Feb 2024 (29 hari) dan Mar 2024 (31 hari)
    data_rt.catat_iuran_bulan(warga.id, 2, 2024, 2, 60000, sekarang=SEKARANG)

    log = data_rt.iuran[warga.id]
    assert log["2024-02-29"] == 30000 // 29
    assert log["2024-03-31"] == 30000 // 31


def test_paket_mode_awal_bulan(data_rt, warga):
    data_rt.catat_iuran_bulan(warga.id, 1, 2024, 3, 45000, mode=MODE_AWAL_BULAN, sekarang=SEKARANG)

    assert data_rt.iuran[warga.id] == {"2024-01-01": 15000, "2024-02-01": 15000, "2024-03-01": 15000}


def test_paket_diabaikan_tanpa_efek(data_rt, warga):
    assert data_rt.catat_iuran_bulan(warga.id, 1, 2024, 0, 15000) is None
    assert data_rt.catat_iuran_bulan(warga.id, 13, 2024, 1, 15000) is None
    assert data_rt.catat_iuran_bulan(warga.id, 1, 2024, 1, 15000, mode="lain") is None
    assert data_rt.catat_iuran_bulan("tidak-ada", 1, 2024, 1, 15000) is None
    assert data_rt.iuran == {}
    assert data_rt.list_transaksi == []


# ---- Iuran bebas ----

def test_iuran_bebas_tanpa_sel_harian(data_rt, warga):
    transaksi = data_rt.catat_iuran_bebas(warga.id, 25000, sekarang=SEKARANG)

    assert data_rt.iuran == {}
    assert transaksi.jumlah == 25000
    assert transaksi.sub_keterangan == "Pembayaran Bebas"
    assert transaksi.tanggal == "15 Mar 2024"

    pelunasan = data_rt.catat_iuran_bebas(warga.id, 5000, "Pelunasan Tunggakan YTD")
    assert pelunasan.sub_keterangan == "Pelunasan Tunggakan YTD"
    assert data_rt.list_transaksi[0] == pelunasan


# ---- Transaksi manual ----

def test_tambah_transaksi_keluar(data_rt):
    transaksi = data_rt.tambah_transaksi(
        "Konsumsi Rapat", 150000, KELUAR, sub_keterangan="Konsumsi",
        tanggal=datetime(2024, 10, 15).date(), sekarang=SEKARANG,
    )
    assert transaksi.tanggal == "15 Okt 2024"
    assert transaksi.timestamp > 0
    assert data_rt.tambah_transaksi("", 1000, KELUAR) is None
    assert data_rt.tambah_transaksi("Beli", 0, KELUAR) is None
    assert data_rt.tambah_transaksi("Beli", 1000, "lain") is None
    assert len(data_rt.list_transaksi) == 1


# ---- Pengaturan & pengguna ----

def test_ubah_nominal_wajib(data_rt):
    assert data_rt.nominal_wajib == 500
    data_rt.ubah_nominal_wajib(1000)
    assert data_rt.nominal_wajib == 1000
    assert data_rt.ubah_nominal_wajib(-1) is None
    assert data_rt.nominal_wajib == 1000


def test_login_akun_bawaan(data_rt):
    assert data_rt.cek_login("sinoman01", "sinoman").role == "admin"
    assert data_rt.cek_login("sinoman01", "salah") is None


def test_tambah_dan_hapus_pengguna(data_rt):
    pengguna = data_rt.tambah_pengguna("Sari", "sari", "rahasia", "bendahara")

    assert data_rt.cek_login("sari", "rahasia") == pengguna
    assert data_rt.tambah_pengguna("Lain", "sari", "x", "pengurus") is None
    assert data_rt.tambah_pengguna("Lain", "sinoman01", "x", "pengurus") is None
    assert data_rt.hapus_pengguna(pengguna.id)
    assert data_rt.cek_login("sari", "rahasia") is None
    assert not data_rt.hapus_pengguna("bawaan")


# ---- Persistensi ----

def test_perubahan_tersimpan_di_lokal(penyimpanan_lokal, data_rt, warga):
    data_rt.catat_iuran_hari(warga.id, [1, 2], 3, 2024, 1000, sekarang=SEKARANG)
    data_rt.ubah_profil("RT 05 / RW 12", "Jl. Merdeka No. 123")

    dimuat = DataRT.muat(penyimpanan_lokal)

    assert [w.nama for w in dimuat.list_warga] == ["Budi Santoso"]
    assert dimuat.list_warga[0].no_kk == "3201010101010001"
    assert dimuat.iuran == {warga.id: {"2024-03-01": 500, "2024-03-02": 500}}
    assert dimuat.list_transaksi == data_rt.list_transaksi
    assert dimuat.pengaturan.nama_instansi == "RT 05 / RW 12"
    assert dimuat.galat_sinkron is None
