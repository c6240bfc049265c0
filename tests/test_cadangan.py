import json
from datetime import datetime

import pytest

from cadangan import (
    VERSI_BACKUP,
    CadanganTidakValid,
    baca_cadangan,
    ekspor_cadangan,
    ekspor_warga_csv,
    nama_file_cadangan,
)
from model import Warga

SEKARANG = datetime(2024, 10, 15, 8, 30)


def test_ekspor_format_backup(data_rt, warga):
    data_rt.catat_iuran_hari(warga.id, [1], 10, 2024, 500, sekarang=SEKARANG)

    isi = ekspor_cadangan(data_rt, SEKARANG)

    assert set(isi) == {"listWarga", "listTransaksi", "iuranData", "exportDate", "version"}
    assert isi["version"] == VERSI_BACKUP == "2.4.0"
    assert isi["listWarga"][0]["noKK"] == "3201010101010001"
    assert isi["listTransaksi"][0]["subKeterangan"] == "Oktober 2024"
    assert isi["iuranData"] == {warga.id: {"2024-10-01": 500}}
    assert nama_file_cadangan(SEKARANG) == "backup_jimpitan_rt_2024-10-15.json"


def test_ekspor_lalu_impor(data_rt, warga):
    data_rt.catat_iuran_bulan(warga.id, 1, 2024, 1, 15500, sekarang=SEKARANG)
    teks = json.dumps(ekspor_cadangan(data_rt, SEKARANG))

    snapshot = baca_cadangan(teks)

    assert snapshot["warga"] == data_rt.list_warga
    assert snapshot["transaksi"] == data_rt.list_transaksi
    assert snapshot["iuran"] == data_rt.iuran


def test_impor_mengganti_semua_data(data_rt, warga):
    data_rt.catat_iuran_bebas(warga.id, 1000)
    teks = json.dumps({
        "listWarga": [{"id": "x1", "nama": "Sari", "noKK": "99", "whatsapp": "", "blok": "C", "terdaftarAt": "1 Jan 2024"}],
        "listTransaksi": [],
        "iuranData": {"x1": {"2024-01-01": 500}},
        "exportDate": "2024-01-02T00:00:00",
        "version": "2.4.0",
    })

    data_rt.ganti_semua(baca_cadangan(teks))

    assert [w.id for w in data_rt.list_warga] == ["x1"]
    assert data_rt.list_transaksi == []
    assert data_rt.iuran == {"x1": {"2024-01-01": 500}}


@pytest.mark.parametrize("teks", [
    "bukan json",
    "[]",
    json.dumps({"listWarga": [], "listTransaksi": []}),
    json.dumps({"listWarga": [{"nama": "Tanpa ID"}], "listTransaksi": [], "iuranData": {}}),
    json.dumps({"listWarga": [], "iuranData": {}, "listTransaksi": [
        {"id": "t", "tanggal": "1 Jan 2024", "keterangan": "x", "kategori": "transfer", "jumlah": 1},
    ]}),
    json.dumps({"listWarga": [], "listTransaksi": [], "iuranData": {"w1": {"2024-01-01": "lima ratus"}}}),
])
def test_backup_tidak_valid(teks):
    with pytest.raises(CadanganTidakValid):
        baca_cadangan(teks)


def test_ekspor_warga_csv():
    list_warga = [
        Warga(id="2", nama="Sari", no_kk="0099", whatsapp="0813", blok="B", terdaftar_at="2 Jan 2024"),
        Warga(id="1", nama="andi", no_kk="0011", whatsapp="0812", blok="A", terdaftar_at="1 Jan 2024"),
    ]

    baris = ekspor_warga_csv(list_warga).splitlines()

    assert baris[0] == "Nama,No KK,WhatsApp,Blok,Tanggal Terdaftar"
    assert baris[1] == "andi,'0011,0812,A,1 Jan 2024"
    assert baris[2].startswith("Sari,'0099")
