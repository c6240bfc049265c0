from datetime import datetime, timedelta

import pandas as pd

from kalender import geser_bulan, parse_tanggal_tampilan, sebagai_date, sebagai_datetime
from model import KELUAR, MASUK

KOLOM_TRANSAKSI = ["id", "tanggal", "keterangan", "sub_keterangan", "kategori", "jumlah", "timestamp"]


def _ke_dataframe(list_transaksi):
    if not list_transaksi:
        return pd.DataFrame(columns=KOLOM_TRANSAKSI)
    return pd.DataFrame([t.model_dump() for t in list_transaksi], columns=KOLOM_TRANSAKSI)


def saldo_berjalan(list_transaksi, terbaru_dulu=True):
    """
    Hitung saldo berjalan tiap transaksi.

    Transaksi diurutkan kronologis berdasarkan timestamp (bukan tanggal
    tampilan), lalu jumlah bertanda dijumlahkan kumulatif mulai dari nol.
    list_transaksi diharapkan terbaru di depan, jadi transaksi dengan
    timestamp sama diproses dari belakang list. Hasilnya list dict
    transaksi + kolom 'saldo', terbaru di atas kecuali terbaru_dulu=False.
    """
    df = _ke_dataframe(list_transaksi)
    if df.empty:
        return []

    df = df.iloc[::-1].sort_values(by="timestamp", kind="mergesort").reset_index(drop=True)
    df["jumlah"] = df["jumlah"].astype("int64")
    bertanda = df["jumlah"].where(df["kategori"] == MASUK, -df["jumlah"])
    df["saldo"] = bertanda.cumsum()

    if terbaru_dulu:
        df = df.iloc[::-1]
    return [
        {
            **baris,
            "jumlah": int(baris["jumlah"]),
            "timestamp": int(baris["timestamp"]),
            "saldo": int(baris["saldo"]),
        }
        for baris in df.to_dict("records")
    ]


def ringkasan_kas(list_transaksi):
    df = _ke_dataframe(list_transaksi)
    total_masuk = int(df.loc[df["kategori"] == MASUK, "jumlah"].sum()) if not df.empty else 0
    total_keluar = int(df.loc[df["kategori"] == KELUAR, "jumlah"].sum()) if not df.empty else 0
    return {
        "total_masuk": total_masuk,
        "total_keluar": total_keluar,
        "saldo": total_masuk - total_keluar,
    }


def _rentang_waktu(list_transaksi, awal, batas):
    """Transaksi dengan awal <= waktu input < batas; urutan list dipertahankan."""
    df = _ke_dataframe(list_transaksi)
    if df.empty:
        return []
    waktu = pd.to_datetime(df["timestamp"].astype("int64"), unit="ms", utc=True)
    # batas berupa waktu lokal, sama seperti saat timestamp dibuat
    mask = (waktu >= pd.Timestamp(awal.astimezone())) & (waktu < pd.Timestamp(batas.astimezone()))
    return [list_transaksi[i] for i in df.index[mask]]


def filter_periode(list_transaksi, mulai, akhir):
    """Transaksi yang waktu inputnya jatuh di [mulai, akhir] (tanggal, inklusif)."""
    awal = sebagai_datetime(sebagai_date(mulai))
    batas = sebagai_datetime(sebagai_date(akhir)) + timedelta(days=1)
    return _rentang_waktu(list_transaksi, awal, batas)


def arus_kas_bulan(list_transaksi, bulan, tahun):
    bulan_depan, tahun_depan = geser_bulan(bulan, tahun, 1)
    bulan_ini = _rentang_waktu(
        list_transaksi, datetime(tahun, bulan, 1), datetime(tahun_depan, bulan_depan, 1)
    )
    ringkasan = ringkasan_kas(bulan_ini)
    return {"masuk": ringkasan["total_masuk"], "keluar": ringkasan["total_keluar"]}


def filter_pengeluaran(list_transaksi, bulan=None, tahun=None):
    """
    Daftar pengeluaran untuk bulan/tahun tertentu (None = semua), terbaru di atas.

    Filter memakai tanggal tampilan yang dipilih saat input; baris yang
    tanggalnya tidak bisa dibaca tetap ditampilkan.
    """
    hasil = []
    for t in list_transaksi:
        if t.kategori != KELUAR:
            continue
        tanggal = parse_tanggal_tampilan(t.tanggal)
        if tanggal is not None:
            if bulan is not None and tanggal.month != bulan:
                continue
            if tahun is not None and tanggal.year != tahun:
                continue
        hasil.append(t)
    return sorted(hasil, key=lambda t: t.timestamp or 0, reverse=True)


def tahun_tersedia(list_transaksi, tahun_sekarang):
    daftar = {tahun_sekarang}
    for t in list_transaksi:
        tanggal = parse_tanggal_tampilan(t.tanggal)
        if tanggal is not None:
            daftar.add(tanggal.year)
    return sorted(daftar, reverse=True)
