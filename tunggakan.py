"""
Perhitungan kewajiban iuran dan tunggakan warga.

Semua fungsi di sini murni: menerima data iuran harian
(warga_id -> 'YYYY-MM-DD' -> jumlah), nominal wajib per hari, dan waktu
acuan `sekarang`, lalu mengembalikan hasil tanpa mengubah input.
"""

import math
from collections import namedtuple
from datetime import date

from kalender import (
    hari_berjalan_tahun,
    jumlah_hari,
    parse_kunci,
    sebagai_date,
)

HARI = "hari"
BULAN = "bulan"
TAHUN = "tahun"
RENTANG = "rentang"

# prefix hanya diisi untuk periode yang bisa dicocokkan lewat awalan kunci
Periode = namedtuple("Periode", ["jenis", "mulai", "akhir", "prefix"])


def periode_hari(tanggal):
    tanggal = sebagai_date(tanggal)
    return Periode(HARI, tanggal, tanggal, tanggal.isoformat())


def periode_bulan(bulan, tahun):
    return Periode(
        BULAN,
        date(tahun, bulan, 1),
        date(tahun, bulan, jumlah_hari(bulan, tahun)),
        f"{tahun}-{bulan:02d}",
    )


def periode_tahun(tahun):
    return Periode(TAHUN, date(tahun, 1, 1), date(tahun, 12, 31), f"{tahun}-")


def periode_tahun_berjalan(sekarang):
    return periode_tahun(sebagai_date(sekarang).year)


def periode_rentang(mulai, akhir):
    mulai, akhir = sebagai_date(mulai), sebagai_date(akhir)
    if akhir < mulai:
        mulai, akhir = akhir, mulai
    return Periode(RENTANG, mulai, akhir, None)


def dalam_periode(kunci, periode):
    """True jika kunci tanggal jatuh di [mulai, akhir] (inklusif)."""
    tanggal = parse_kunci(kunci)
    return tanggal is not None and periode.mulai <= tanggal <= periode.akhir


def total_terbayar(log_warga, periode):
    """Jumlah semua setoran warga yang tanggalnya masuk periode."""
    if not log_warga:
        return 0
    if periode.prefix:
        # format kunci selalu YYYY-MM-DD, jadi awalan bulan/tahun setara dengan rentang tanggal
        return sum(jumlah for kunci, jumlah in log_warga.items() if kunci.startswith(periode.prefix))
    return sum(jumlah for kunci, jumlah in log_warga.items() if dalam_periode(kunci, periode))


def jumlah_hari_wajib(periode, sekarang):
    hari_ini = sebagai_date(sekarang)
    if periode.akhir < hari_ini:
        return (periode.akhir - periode.mulai).days + 1
    if periode.mulai > hari_ini:
        return 0
    if periode.jenis == TAHUN:
        return hari_berjalan_tahun(sekarang)
    return (hari_ini - periode.mulai).days + 1


def hitung_kewajiban(periode, nominal_wajib, sekarang):
    return jumlah_hari_wajib(periode, sekarang) * nominal_wajib


def persen_terbayar(terbayar, kewajiban):
    rasio = min(1, terbayar / max(1, kewajiban))
    return math.floor(100 * rasio + 0.5)


def urut_warga(list_warga):
    return sorted(list_warga, key=lambda w: w.nama.casefold())


def rekap_warga(warga, iuran, periode, nominal_wajib, sekarang):
    terbayar = total_terbayar(iuran.get(warga.id, {}), periode)
    kewajiban = hitung_kewajiban(periode, nominal_wajib, sekarang)
    return {
        "id": warga.id,
        "nama": warga.nama,
        "blok": warga.blok,
        "terbayar": terbayar,
        "kewajiban": kewajiban,
        "sisa": max(0, kewajiban - terbayar),
        "persen": persen_terbayar(terbayar, kewajiban),
    }


def menunggak(rekap):
    return rekap["sisa"] > 0


def lunas(rekap):
    return rekap["sisa"] == 0 and rekap["terbayar"] > 0


def _cocok(warga, cari):
    cari = (cari or "").strip().casefold()
    if not cari:
        return True
    return cari in warga.nama.casefold() or cari in warga.blok.casefold()


def rekap_semua(list_warga, iuran, periode, nominal_wajib, sekarang, cari=""):
    return [
        rekap_warga(w, iuran, periode, nominal_wajib, sekarang)
        for w in urut_warga(list_warga)
        if _cocok(w, cari)
    ]


def rekap_tunggakan(list_warga, iuran, periode, nominal_wajib, sekarang, cari=""):
    """Pisahkan warga jadi (menunggak, lunas), masing-masing urut nama."""
    semua = rekap_semua(list_warga, iuran, periode, nominal_wajib, sekarang, cari)
    return [r for r in semua if menunggak(r)], [r for r in semua if lunas(r)]


def tunggakan_tahun_berjalan(list_warga, iuran, nominal_wajib, sekarang):
    periode = periode_tahun_berjalan(sekarang)
    semua = rekap_semua(list_warga, iuran, periode, nominal_wajib, sekarang)
    return sorted([r for r in semua if menunggak(r)], key=lambda r: r["sisa"], reverse=True)


def sisa_tahun_berjalan(iuran, warga_id, nominal_wajib, sekarang):
    periode = periode_tahun_berjalan(sekarang)
    kewajiban = hitung_kewajiban(periode, nominal_wajib, sekarang)
    return max(0, kewajiban - total_terbayar(iuran.get(warga_id, {}), periode))


def total_tunggakan(daftar_rekap):
    return sum(r["sisa"] for r in daftar_rekap)


def matriks_pembayaran(list_warga, iuran, tahun):
    """Status setor per bulan (Jan..Des): ada setoran atau tidak, bukan cukup atau tidak."""
    hasil = []
    for warga in urut_warga(list_warga):
        log_warga = iuran.get(warga.id, {})
        status = [
            total_terbayar(log_warga, periode_bulan(bulan, tahun)) > 0
            for bulan in range(1, 13)
        ]
        hasil.append({"id": warga.id, "nama": warga.nama, "blok": warga.blok, "status": status})
    return hasil
