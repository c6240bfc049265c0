import json
from datetime import datetime
from typing import Dict, List

import pandas as pd
from pydantic import TypeAdapter, ValidationError

from model import Transaksi, Warga
from tunggakan import urut_warga

VERSI_BACKUP = "2.4.0"

_daftar_warga = TypeAdapter(List[Warga])
_daftar_transaksi = TypeAdapter(List[Transaksi])
_data_iuran = TypeAdapter(Dict[str, Dict[str, int]])


class CadanganTidakValid(Exception):
    pass


def ekspor_cadangan(data, sekarang=None):
    """Isi file backup JSON: warga, transaksi, iuran harian, waktu ekspor, versi."""
    sekarang = sekarang or datetime.now()
    return {
        "listWarga": [w.model_dump(by_alias=True) for w in data.list_warga],
        "listTransaksi": [t.model_dump(by_alias=True) for t in data.list_transaksi],
        "iuranData": {warga_id: dict(log) for warga_id, log in data.iuran.items()},
        "exportDate": sekarang.isoformat(),
        "version": VERSI_BACKUP,
    }


def nama_file_cadangan(sekarang=None):
    sekarang = sekarang or datetime.now()
    return f"backup_jimpitan_rt_{sekarang.strftime('%Y-%m-%d')}.json"


def baca_cadangan(teks):
    """
    Baca dan validasi seluruh isi file backup.

    Tidak ada yang dikembalikan sebelum semua bagian lolos validasi, jadi
    file rusak tidak pernah menghasilkan impor setengah jalan.
    """
    try:
        isi = json.loads(teks)
    except (TypeError, ValueError) as e:
        raise CadanganTidakValid(f"File bukan JSON yang valid: {e}") from e

    if not isinstance(isi, dict):
        raise CadanganTidakValid("Format backup tidak dikenali.")
    for kunci in ("listWarga", "listTransaksi", "iuranData"):
        if kunci not in isi:
            raise CadanganTidakValid(f"Bagian '{kunci}' tidak ditemukan.")

    try:
        return {
            "warga": _daftar_warga.validate_python(isi["listWarga"]),
            "transaksi": _daftar_transaksi.validate_python(isi["listTransaksi"]),
            "iuran": _data_iuran.validate_python(isi["iuranData"]),
        }
    except ValidationError as e:
        raise CadanganTidakValid(f"Isi backup tidak valid: {e.error_count()} kesalahan.") from e


def ekspor_warga_csv(list_warga):
    kolom = ["Nama", "No KK", "WhatsApp", "Blok", "Tanggal Terdaftar"]
    df = pd.DataFrame(
        [
            # tanda ' supaya Excel tidak mengubah No KK jadi angka
            [w.nama, f"'{w.no_kk}", w.whatsapp, w.blok, w.terdaftar_at]
            for w in urut_warga(list_warga)
        ],
        columns=kolom,
    )
    return df.to_csv(index=False)
