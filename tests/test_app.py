import io
import json

import pytest

from app import ambil_data, baca_rupiah, format_rupiah


def test_format_rupiah():
    assert format_rupiah(1500000) == "Rp 1.500.000"
    assert format_rupiah("2500") == "Rp 2.500"
    assert format_rupiah(None) == "Rp 0"


def test_baca_rupiah():
    assert baca_rupiah("1.500.000") == 1500000
    assert baca_rupiah("Rp 2.000") == 2000
    assert baca_rupiah("") is None
    with pytest.raises(ValueError):
        baca_rupiah("abc")


# ---- Login ----

def test_halaman_butuh_login(client):
    response = client.get("/")
    assert response.status_code == 302
    assert "/login" in response.headers["Location"]


def test_login_akun_bawaan(client):
    response = client.post("/login", data={"user_id": "sinoman01", "password": "sinoman"})
    assert response.status_code == 302
    with client.session_transaction() as sess:
        assert sess["logged_in"]
        assert sess["role"] == "admin"


def test_login_salah(client):
    response = client.post(
        "/login", data={"user_id": "sinoman01", "password": "salah"}, follow_redirects=True
    )
    assert b"User ID atau Password salah" in response.data
    with client.session_transaction() as sess:
        assert not sess.get("logged_in")


def test_logout(client_login):
    client_login.get("/logout")
    with client_login.session_transaction() as sess:
        assert not sess.get("logged_in")


# ---- Halaman ----

@pytest.mark.parametrize("url", [
    "/",
    "/?tahun=2023",
    "/warga",
    "/master-data",
    "/iuran",
    "/iuran?mode=bulan",
    "/iuran?mode=bebas&jumlah=5000&catatan=Pelunasan+Tunggakan+YTD",
    "/iuran?rekap=bulan&tab=lunas&lihat_bulan=12&lihat_tahun=2023",
    "/pengeluaran",
    "/pengeluaran?bulan=Semua&tahun=Semua",
    "/laporan",
    "/laporan?mulai=2024-01-01&akhir=2024-12-31",
    "/backup",
    "/pengaturan",
])
def test_halaman_terbuka(client_login, url):
    response = client_login.get(url)
    assert response.status_code == 200


def test_dashboard_cek_warga(client_login):
    data = ambil_data()
    warga = data.tambah_warga("Budi", "3201", blok="A-1")

    response = client_login.get(f"/?cek={warga.id}")

    assert response.status_code == 200
    assert b"% terbayar" in response.data


# ---- Warga ----

def test_daftar_dan_hapus_warga(client_login):
    response = client_login.post(
        "/warga", data={"nama": "Budi", "no_kk": "3201", "whatsapp": "0812", "blok": "A-1"},
        follow_redirects=True,
    )
    assert b"Budi berhasil didaftarkan" in response.data
    warga = ambil_data().list_warga[0]

    client_login.post(f"/warga/{warga.id}/hapus")

    assert ambil_data().list_warga == []


def test_ubah_warga_dan_ekspor_csv(client_login):
    warga = ambil_data().tambah_warga("Budi", "3201")

    client_login.post(f"/warga/{warga.id}/ubah", data={"nama": "Budi S", "no_kk": "3201", "whatsapp": "", "blok": "B-2"})
    response = client_login.get("/master-data/ekspor")

    assert ambil_data().cari_warga(warga.id).blok == "B-2"
    assert response.mimetype == "text/csv"
    assert "Budi S,'3201" in response.get_data(as_text=True)


def test_master_data_cari(client_login):
    data = ambil_data()
    data.tambah_warga("Budi", "3201777001", blok="A-1")
    data.tambah_warga("Sari", "3202888002", blok="B-1")

    response = client_login.get("/master-data?cari=sari&blok=Semua")

    assert b"3202888002" in response.data
    assert b"3201777001" not in response.data


# ---- Iuran ----

def test_catat_iuran_per_hari(client_login):
    warga = ambil_data().tambah_warga("Budi", "3201")

    response = client_login.post("/iuran", data={
        "mode": "hari", "warga_id": warga.id, "bulan": "3", "tahun": "2024",
        "hari": ["1", "2"], "jumlah": "1.000",
    }, follow_redirects=True)

    assert b"Iuran tercatat" in response.data
    data = ambil_data()
    assert data.iuran[warga.id] == {"2024-03-01": 500, "2024-03-02": 500}
    assert data.list_transaksi[0].jumlah == 1000


def test_catat_iuran_jumlah_otomatis(client_login):
    data = ambil_data()
    warga = data.tambah_warga("Budi", "3201")

    client_login.post("/iuran", data={
        "mode": "bulan", "warga_id": warga.id, "bulan": "2", "tahun": "2024",
        "jumlah_bulan": "1", "mode_paket": "harian", "jumlah": "",
    })

    assert data.list_transaksi[0].jumlah == 29 * data.nominal_wajib
    assert data.iuran[warga.id]["2024-02-29"] == data.nominal_wajib


def test_catat_iuran_tanpa_warga_ditolak(client_login):
    response = client_login.post("/iuran", data={
        "mode": "bebas", "warga_id": "", "jumlah": "5.000",
    }, follow_redirects=True)

    assert b"Data setoran belum lengkap" in response.data
    assert ambil_data().list_transaksi == []


def test_ubah_nominal_wajib(client_login):
    client_login.post("/iuran/nominal", data={"nominal_wajib": "1.000"})
    assert ambil_data().nominal_wajib == 1000


# ---- Pengeluaran & laporan ----

def test_catat_pengeluaran(client_login):
    response = client_login.post("/pengeluaran", data={
        "keterangan": "Snack Rapat Oktober", "kategori": "Konsumsi", "jumlah": "150.000", "tanggal": "2024-10-15",
    }, follow_redirects=True)
    assert b"Pengeluaran berhasil disimpan" in response.data

    transaksi = ambil_data().list_transaksi[0]
    assert transaksi.kategori == "keluar"
    assert transaksi.tanggal == "15 Okt 2024"
    assert transaksi.sub_keterangan == "Konsumsi"

    response = client_login.get("/pengeluaran?bulan=10&tahun=2024")
    assert b"Snack Rapat Oktober" in response.data


def test_transaksi_manual_di_laporan(client_login):
    client_login.post("/laporan/transaksi", data={
        "kategori": "masuk", "keterangan": "Donasi", "sub_keterangan": "Hamba Allah", "jumlah": "50.000",
    })

    response = client_login.get("/laporan")

    assert b"Donasi" in response.data
    assert b"Rp 50.000" in response.data


def test_filter_laporan_tanggal_rusak(client_login):
    response = client_login.post("/laporan", data={"mulai": "kemarin", "akhir": ""})
    assert b"Format tanggal tidak valid" in response.data


# ---- Backup ----

def test_ekspor_backup(client_login):
    ambil_data().tambah_warga("Budi", "3201")

    response = client_login.get("/backup/ekspor")

    assert response.mimetype == "application/json"
    assert "backup_jimpitan_rt_" in response.headers["Content-Disposition"]
    isi = json.loads(response.get_data(as_text=True))
    assert isi["listWarga"][0]["nama"] == "Budi"


def test_impor_backup_tidak_valid_tidak_mengubah_data(client_login):
    data = ambil_data()
    warga = data.tambah_warga("Budi", "3201")

    response = client_login.post("/backup/impor", data={
        "file": (io.BytesIO(b'{"listWarga": "rusak"}'), "backup.json"),
    }, content_type="multipart/form-data", follow_redirects=True)

    assert b"File tidak valid!" in response.data
    assert [w.id for w in data.list_warga] == [warga.id]


def test_impor_backup(client_login):
    ambil_data().tambah_warga("Budi", "3201")
    isi = {
        "listWarga": [{"id": "x1", "nama": "Sari", "noKK": "99", "whatsapp": "", "blok": "C", "terdaftarAt": ""}],
        "listTransaksi": [],
        "iuranData": {},
        "exportDate": "2024-01-02T00:00:00",
        "version": "2.4.0",
    }

    response = client_login.post("/backup/impor", data={
        "file": (io.BytesIO(json.dumps(isi).encode("utf-8")), "backup.json"),
    }, content_type="multipart/form-data", follow_redirects=True)

    assert b"Data berhasil diimpor!" in response.data
    assert [w.nama for w in ambil_data().list_warga] == ["Sari"]


# ---- Pengaturan ----

def test_ubah_profil_dan_logo(client_login):
    client_login.post("/pengaturan", data={
        "nama_instansi": "RT 05 / RW 12",
        "alamat_instansi": "Jl. Merdeka No. 123",
        "logo": (io.BytesIO(b"\x89PNG"), "logo.png", "image/png"),
    }, content_type="multipart/form-data")

    pengaturan = ambil_data().pengaturan
    assert pengaturan.nama_instansi == "RT 05 / RW 12"
    assert pengaturan.logo_instansi.startswith("data:image/png;base64,")


def test_tambah_pengguna_lalu_login(client, client_login):
    client_login.post("/pengaturan/pengguna", data={
        "nama": "Sari", "jabatan": "Bendahara", "user_id": "sari", "password": "rahasia", "role": "bendahara",
    })
    client_login.get("/logout")

    client.post("/login", data={"user_id": "sari", "password": "rahasia"})

    with client.session_transaction() as sess:
        assert sess["username"] == "Sari"
